"""Run configuration loader.

Configuration is an optional YAML file; CLI flags override it and code
defaults fill the gaps. Keeping run settings in YAML allows:
- reproducible runs (the resolved config is written to the run manifest)
- switching trace/analytics output without touching code

Example:

    run:
      out_dir: runs/{run_id}
      progress: true
    execution:
      mode: rat
    trace:
      enabled: true
      format: parquet
"""

from __future__ import annotations
import copy
from typing import Any, Dict, Optional
import yaml

DEFAULTS: Dict[str, Any] = {
    "run": {
        "run_id": None,
        "run_id_auto": {"enabled": True, "prefix_digits": 8, "suffix_digits": 6},
        "out_dir": None,
        "progress": False,
    },
    "execution": {
        "mode": "batch",
        "chunk_size": 1,
    },
    "logging": {
        "level": "WARNING",
        "log_dir": None,
    },
    "trace": {
        "enabled": False,
        "format": "jsonl",
    },
    "analytics": {
        "enabled": False,
    },
}

MODES = ("batch", "rat")


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def default_config() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULTS)


def merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge; `override` wins, None values in it are ignored."""
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if v is None:
            continue
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def resolve_config(path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Defaults <- YAML file <- overrides."""
    cfg = default_config()
    if path:
        loaded = load_yaml(path)
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {path} must contain a mapping, got {type(loaded).__name__}")
        cfg = merge(cfg, loaded)
    cfg = merge(cfg, overrides or {})

    mode = str(cfg["execution"].get("mode", "batch")).lower()
    if mode not in MODES:
        raise ValueError(f"Unknown execution.mode: {mode}. Expected one of {list(MODES)}")
    cfg["execution"]["mode"] = mode
    if int(cfg["execution"].get("chunk_size", 1)) < 1:
        raise ValueError("execution.chunk_size must be >= 1")
    return cfg
