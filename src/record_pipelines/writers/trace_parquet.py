from __future__ import annotations
import os
import pyarrow as pa
import pyarrow.parquet as pq

from .base import TraceWriter
from ..pipeline.trace import RatDebugTrace


def trace_schema() -> pa.Schema:
    return pa.schema([
        ("step", pa.int64()),
        ("kind", pa.string()),          # record | flush
        ("origin_stage", pa.int64()),   # -1 for record steps
        ("pipe_point", pa.int64()),     # absolute pipe point, 0 = input
        ("stage_name", pa.string()),
        ("slot", pa.int64()),           # position within the pipe point
        ("text", pa.string()),
    ], metadata={"schema_version": "v1"})


class ParquetTraceWriter(TraceWriter):
    """One row per record per pipe point; empty pipe points have no rows."""
    name = "parquet"
    extension = "parquet"

    def write(self, trace: RatDebugTrace, *, out_dir: str, run_id: str) -> str:
        path = self.path_for(out_dir, run_id)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        table = pa.Table.from_pylist(trace.to_rows(), schema=trace_schema())
        pq.write_table(table, path, compression="zstd")
        return path
