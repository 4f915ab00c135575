"""Analytics event schemas.

One event per stage per run, carrying record counts:
- input_records: records the stage received
- output_records: records the stage emitted (including flush output)
- flushed_records: records released by flush at end of input

Events are stored to Parquet by AnalyticsSink. No strict validation is
applied beyond the helper below.
"""

from __future__ import annotations
from typing import Any, Dict
import time

COUNT_KEYS = ("input_records", "output_records", "flushed_records")


def make_event(
    *,
    run_id: str,
    stage: str,
    stage_index: int,
    mode: str,
    counts: Dict[str, int],
    metrics: Dict[str, float] | None = None,
) -> Dict[str, Any]:
    return {
        "run_id": run_id,
        "stage": stage,
        "stage_index": stage_index,
        "mode": mode,
        "timestamp_ms": int(time.time() * 1000),
        "counts": {k: int(counts.get(k, 0)) for k in COUNT_KEYS},
        "metrics": metrics or {},
    }


def events_from_counts(run_id: str, mode: str, stage_counts) -> list:
    """Build one event per stage from executor stage counts."""
    events = []
    for c in stage_counts:
        inp = c.get("input_records", 0)
        out = c.get("output_records", 0)
        metrics = {"pass_ratio": out / inp} if inp else {}
        events.append(make_event(
            run_id=run_id,
            stage=c["stage"],
            stage_index=c["stage_index"],
            mode=mode,
            counts=c,
            metrics=metrics,
        ))
    return events
