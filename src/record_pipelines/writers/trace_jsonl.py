from __future__ import annotations
import os

from .base import TraceWriter
from ..pipeline.trace import RatDebugTrace
from ..storage.writer import append_jsonl


class JSONLTraceWriter(TraceWriter):
    """One JSON object per step: header line first, then records, then flushes."""
    name = "jsonl"
    extension = "jsonl"

    def write(self, trace: RatDebugTrace, *, out_dir: str, run_id: str) -> str:
        path = self.path_for(out_dir, run_id)
        if os.path.exists(path):
            os.remove(path)
        header = {"kind": "header", "run_id": run_id, "stage_names": list(trace.stage_names),
                  "total_steps": trace.total_steps}
        rows = [header]
        for step, entry in enumerate(trace.entries()):
            row = entry.to_dict()
            row["step"] = step
            row["label"] = trace.step_label(step)
            rows.append(row)
        append_jsonl(path, rows)
        return path
