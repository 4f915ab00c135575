"""Trace writer registry.

Add new trace export formats without changing the runner by registering
them here or at runtime with register_trace_writer().
"""

from __future__ import annotations
from typing import Dict
from .base import TraceWriter
from .trace_jsonl import JSONLTraceWriter
from .trace_parquet import ParquetTraceWriter

_TRACE: Dict[str, TraceWriter] = {
    "jsonl": JSONLTraceWriter(),
    "parquet": ParquetTraceWriter(),
}


def register_trace_writer(name: str, writer: TraceWriter) -> None:
    if name in _TRACE:
        raise ValueError(f"Trace writer '{name}' already registered")
    _TRACE[name] = writer


def list_trace_writers() -> list[str]:
    return list(_TRACE.keys())


def get_trace_writer(name: str) -> TraceWriter:
    """Get trace writer by name."""
    if name not in _TRACE:
        raise KeyError(
            f"Unknown trace writer: {name}. "
            f"Available: {list(_TRACE)}. "
            f"Register with register_trace_writer()"
        )
    return _TRACE[name]
