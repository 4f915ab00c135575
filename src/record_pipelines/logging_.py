"""Logging utilities.

We use Python's standard `logging` module with a plain structured format.

- Console handler on stderr; stdout is reserved for pipeline output.
- When a log directory is configured, logs also go to `<log_dir>/<run_id>.log`.
- Default level is WARNING so the CLI's stderr stays to the point;
  `-v` / `-vv` raise it to INFO / DEBUG.
"""

from __future__ import annotations
import logging
import os
import sys
from typing import Optional, Union

LOGGER_NAME = "record_pipelines"
_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def verbosity_to_level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    run_id: str,
    level: Union[int, str] = logging.WARNING,
    log_dir: Optional[str] = None,
) -> Optional[str]:
    """
    Setup logging for a run. Safe to call more than once per process.

    Args:
        run_id: Run identifier (names the log file)
        level: Console/file level, as a logging constant or name
        log_dir: Directory for `<run_id>.log`; no file logging if None

    Returns:
        Path of the log file, if one was configured.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    # Console
    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    log_path = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_path = os.path.join(log_dir, f"{run_id}.log")
        # File
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return log_path
