"""CLI entrypoints.

Commands:
- `pipe-run <pipeline.pipe> <input.data> [-o output] [--mode batch|rat]`
- `pipe-run-rat <pipeline.pipe> <input.data> [-o output]` (record-at-a-time)

Both accept:
- `--config run.yaml` : run configuration (see config.loader)
- `--out-dir DIR`     : write manifest/report (and trace/analytics) under DIR
- `--trace FORMAT`    : export the RAT trace as jsonl or parquet
- `--analytics`       : per-stage Parquet analytics
- `--progress`        : tqdm progress bar on stderr
- `-v / -vv`          : INFO / DEBUG logging on stderr

Exit code 1 on any read, parse, compile or run error, with the message on
stderr and no output written. On success the output goes to stdout (or
`-o`) and a one-line summary goes to stderr.
"""

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional
import pyarrow as pa

from .config.loader import resolve_config
from .errors import PipelineError
from .logging_ import setup_logging, verbosity_to_level
from .pipeline.build import run_files
from .run_id import resolve_out_dir, resolve_run_id
from .storage.writer import write_output_text
from .writers.registry import list_trace_writers

log = logging.getLogger("record_pipelines.cli")


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser(prog: str, with_mode: bool) -> argparse.ArgumentParser:
    desc = "Run a pipeline file against input data"
    if not with_mode:
        desc += " (record-at-a-time)"
    p = _ArgumentParser(prog=prog, description=desc + ".")
    p.add_argument("pipeline", help="Pipeline definition file (.pipe)")
    p.add_argument("input", help="Input data file (80-byte records)")
    p.add_argument("-o", "--output", default=None, help="Output file (default: stdout)")
    if with_mode:
        p.add_argument("--mode", choices=["batch", "rat"], default=None, help="Executor (default: batch)")
    p.add_argument("--config", default=None, help="Run configuration YAML")
    p.add_argument("--out-dir", default=None, help="Run artifact directory; {run_id} is substituted")
    p.add_argument("--run-id", default=None, help="Explicit run id")
    p.add_argument("--trace", choices=list_trace_writers(), default=None, help="Export the RAT trace")
    p.add_argument("--analytics", action="store_true", help="Write per-stage Parquet analytics")
    p.add_argument("--progress", action="store_true", help="Show a progress bar on stderr")
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    return p


def _overrides(args: argparse.Namespace, mode: Optional[str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "run": {
            "run_id": args.run_id,
            "out_dir": args.out_dir,
            "progress": True if args.progress else None,
        },
        "execution": {"mode": mode},
    }
    if args.trace:
        out["trace"] = {"enabled": True, "format": args.trace}
    if args.analytics:
        out["analytics"] = {"enabled": True}
    if args.verbose:
        out["logging"] = {"level": logging.getLevelName(verbosity_to_level(args.verbose))}
    return out


def _err(msg: str) -> int:
    print(msg, file=sys.stderr)
    return 1


def run(argv: Optional[List[str]], *, prog: str, forced_mode: Optional[str] = None) -> int:
    args = _build_parser(prog, with_mode=forced_mode is None).parse_args(argv)
    mode = forced_mode or args.mode

    try:
        cfg = resolve_config(args.config, _overrides(args, mode))
    except (OSError, ValueError) as e:
        return _err(f"Error reading config file '{args.config}': {e}")

    # read errors are reported before anything runs
    try:
        with open(args.pipeline, "r", encoding="utf-8") as f:
            f.read()
    except (OSError, UnicodeDecodeError) as e:
        return _err(f"Error reading pipeline file '{args.pipeline}': {e}")
    try:
        with open(args.input, "rb"):
            pass
    except OSError as e:
        return _err(f"Error reading input file '{args.input}': {e}")

    cfg["paths"] = {"pipeline": args.pipeline, "input": args.input,
                    "config": os.path.abspath(args.config) if args.config else None}
    run_id = resolve_run_id(cfg)
    cfg["run"]["run_id"] = run_id
    wants_artifacts = cfg["trace"].get("enabled") or cfg["analytics"].get("enabled")
    if wants_artifacts and not cfg["run"].get("out_dir"):
        cfg["run"]["out_dir"] = os.path.join("runs", "{run_id}")
    out_dir = resolve_out_dir(cfg, run_id)
    log_dir = cfg["logging"].get("log_dir") or (os.path.join(out_dir, "logs") if out_dir else None)
    try:
        setup_logging(run_id=run_id, level=cfg["logging"].get("level", "WARNING"), log_dir=log_dir)
    except OSError as e:
        return _err(f"Error creating log directory '{log_dir}': {e}")

    try:
        result = run_files(args.pipeline, args.input, cfg)
    except PipelineError as e:
        return _err(f"Pipeline error: {e}")
    except (OSError, pa.ArrowException) as e:
        return _err(f"Run error: {e}")

    if args.output:
        try:
            write_output_text(args.output, result.output_text)
        except OSError as e:
            return _err(f"Error writing output file '{args.output}': {e}")
        print(f"Processed {result.input_count} -> {result.output_count} records, output: {args.output}",
              file=sys.stderr)
    else:
        sys.stdout.write(result.output_text)
        if result.output_text and not result.output_text.endswith("\n"):
            sys.stdout.write("\n")
        sys.stdout.flush()
        print(f"Processed {result.input_count} -> {result.output_count} records", file=sys.stderr)

    if result.out_dir:
        log.info(f"Run artifacts: {result.out_dir}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    return run(argv, prog="pipe-run")


def main_rat(argv: Optional[List[str]] = None) -> int:
    return run(argv, prog="pipe-run-rat", forced_mode="rat")


if __name__ == "__main__":
    sys.exit(main())
