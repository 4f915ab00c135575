"""Run identifiers and run output directories.

A run id is either given (`run.run_id`, `--run-id`) or built from
`run.run_id_auto`:

    <pipeline stem>_<YYYYMMDD>_<HHMMSS>

`prefix_digits` / `suffix_digits` pick how much of the UTC timestamp is
kept on each side, `include_input_name` and `separator` shape the rest.
"""

from __future__ import annotations
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_UNSAFE = re.compile(r"[^\w\-]")
_TS_FORMAT = "%Y%m%d%H%M%S"


def _stamp_parts(prefix_digits: int, suffix_digits: int, now: Optional[datetime] = None) -> List[str]:
    stamp = (now or datetime.now(timezone.utc)).strftime(_TS_FORMAT)
    head = stamp[:max(prefix_digits, 0)]
    tail = stamp[len(stamp) - min(suffix_digits, len(stamp)):] if suffix_digits > 0 else ""
    return [p for p in (head, tail) if p]


def _stem(paths: Dict[str, Optional[str]]) -> str:
    source = paths.get("pipeline") or paths.get("input") or ""
    stem = os.path.splitext(os.path.basename(source))[0]
    return _UNSAFE.sub("_", stem) or "run"


def generate_run_id(cfg: Dict[str, Any], auto_cfg: Dict[str, Any]) -> str:
    parts: List[str] = []
    if auto_cfg.get("include_input_name", True):
        parts.append(_stem(cfg.get("paths") or {}))
    parts += _stamp_parts(int(auto_cfg.get("prefix_digits", 8)), int(auto_cfg.get("suffix_digits", 6)))
    if not parts:
        return "run"
    return str(auto_cfg.get("separator", "_")).join(parts)


def resolve_run_id(cfg: Dict[str, Any]) -> str:
    """Explicit run id if set, else an auto id, else "run"."""
    run_cfg = cfg.get("run") or {}
    given = str(run_cfg.get("run_id") or "").strip()
    if given:
        return given
    auto_cfg = run_cfg.get("run_id_auto")
    if isinstance(auto_cfg, dict) and auto_cfg.get("enabled", True):
        return generate_run_id(cfg, auto_cfg)
    return "run"


def resolve_out_dir(cfg: Dict[str, Any], run_id: str) -> Optional[str]:
    """`run.out_dir` with `{run_id}` substituted; None means no run artifacts."""
    out_dir = (cfg.get("run") or {}).get("out_dir")
    if not out_dir:
        return None
    return str(out_dir).replace("{run_id}", run_id)
