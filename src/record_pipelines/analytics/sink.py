"""Analytics sink.

We emit one analytics event per stage at the end of every run.

Two storage layers:
1) Raw events (append-only Parquet): `analytics/events/stage=<index>/date=<date>/events.parquet`
2) Aggregates (append-only Parquet): `analytics/aggregates/run_aggregates.parquet`

Stages are partitioned by index; stage labels are DSL text and are kept
as a column instead.
"""

from __future__ import annotations
from typing import Any, Dict, List, Tuple
import os
import logging
import pyarrow as pa
import pyarrow.parquet as pq
from datetime import datetime, timezone

log = logging.getLogger("record_pipelines.analytics")


class AnalyticsSink:
    def __init__(self, out_dir: str, run_id: str):
        self.out_dir = out_dir
        self.run_id = run_id
        self.events_dir = os.path.join(out_dir, "analytics", "events")
        self.aggs_dir = os.path.join(out_dir, "analytics", "aggregates")
        os.makedirs(self.events_dir, exist_ok=True)
        os.makedirs(self.aggs_dir, exist_ok=True)

        # in-memory aggregator for a single run; written by flush_aggregates()
        self._agg: Dict[Tuple[str, int], Dict[str, Any]] = {}

    def event_path(self, stage_index: int, date: str) -> str:
        return os.path.join(self.events_dir, f"stage={stage_index}", f"date={date}", "events.parquet")

    @property
    def aggregates_path(self) -> str:
        return os.path.join(self.aggs_dir, "run_aggregates.parquet")

    def emit(self, event: Dict[str, Any]) -> None:
        idx = int(event["stage_index"])
        date = datetime.fromtimestamp(event["timestamp_ms"] / 1000, tz=timezone.utc).date().isoformat()

        # 1) write raw events
        self._append_parquet(self.event_path(idx, date), [event])

        # 2) update aggregates
        key = (event["run_id"], idx)
        cur = self._agg.get(key, {
            "run_id": event["run_id"], "date": date, "stage_index": idx, "stage": event["stage"],
            "mode": event.get("mode", ""),
            "input_records": 0, "output_records": 0, "flushed_records": 0,
        })
        counts = event.get("counts", {})
        cur["input_records"] += int(counts.get("input_records", 0))
        cur["output_records"] += int(counts.get("output_records", 0))
        cur["flushed_records"] += int(counts.get("flushed_records", 0))
        self._agg[key] = cur

    def emit_all(self, events: List[Dict[str, Any]]) -> None:
        for ev in events:
            self.emit(ev)

    def flush_aggregates(self) -> None:
        if not self._agg:
            return
        rows = sorted(self._agg.values(), key=lambda r: r["stage_index"])
        self._append_parquet(self.aggregates_path, rows)
        log.info(f"Wrote {len(rows)} aggregate rows to {self.aggregates_path}")
        self._agg.clear()

    def _normalize_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Empty dicts have no Parquet struct type; store them as null."""
        return {k: (None if isinstance(v, dict) and not v else v) for k, v in row.items()}

    def _append_parquet(self, path: str, rows: List[Dict[str, Any]]) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        table = pa.Table.from_pylist([self._normalize_row(r) for r in rows])

        if os.path.exists(path):
            if os.path.getsize(path) == 0:
                # Empty file from an interrupted write - start fresh
                os.remove(path)
            else:
                existing = pq.read_table(path)
                merged = existing.to_pylist() + table.to_pylist()
                table = pa.Table.from_pylist([self._normalize_row(r) for r in merged])

        pq.write_table(table, path, compression="zstd")
