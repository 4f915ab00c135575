"""Trace model produced by the RAT executor.

A pipe point is the buffer between two adjacent stages (or before the
first / after the last). For an N-stage pipeline:

- RecordTrace.pipe_points has N+1 entries: [0] is the raw input record,
  [i+1] is what stage i emitted for it.
- FlushTrace.pipe_points is relative to the flushing stage `o`: [0] is
  what stage o released on flush, [k] is what stage o+k emitted for it.
  It has N-o entries.

Traces are immutable once produced. RatDebugTrace is the whole of what a
viewer needs to render a run.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple, Union

from ..record import Record

PipePoints = Tuple[Tuple[Record, ...], ...]


def _freeze(points: Sequence[Sequence[Record]]) -> PipePoints:
    return tuple(tuple(p) for p in points)


@dataclass(frozen=True)
class RecordTrace:
    record_index: int
    pipe_points: PipePoints

    def __post_init__(self):
        object.__setattr__(self, "pipe_points", _freeze(self.pipe_points))

    @property
    def kind(self) -> str:
        return "record"

    @property
    def final(self) -> Tuple[Record, ...]:
        return self.pipe_points[-1]

    def at(self, pipe_point: int) -> Tuple[Record, ...]:
        return self.pipe_points[pipe_point]

    def dropped_at(self) -> Union[int, None]:
        """Index of the stage that dropped the record, or None if it survived."""
        for i in range(1, len(self.pipe_points)):
            if not self.pipe_points[i]:
                return i - 1
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "record_index": self.record_index,
            "pipe_points": [[r.rstrip() for r in p] for p in self.pipe_points],
        }


@dataclass(frozen=True)
class FlushTrace:
    stage_index: int
    pipe_points: PipePoints

    def __post_init__(self):
        object.__setattr__(self, "pipe_points", _freeze(self.pipe_points))

    @property
    def kind(self) -> str:
        return "flush"

    @property
    def final(self) -> Tuple[Record, ...]:
        return self.pipe_points[-1]

    def at(self, pipe_point: int) -> Tuple[Record, ...]:
        """Records at absolute pipe point `pipe_point` (origin + 1 or later)."""
        return self.pipe_points[pipe_point - self.stage_index - 1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "stage_index": self.stage_index,
            "pipe_points": [[r.rstrip() for r in p] for p in self.pipe_points],
        }


TraceEntry = Union[RecordTrace, FlushTrace]


@dataclass
class RatDebugTrace:
    stage_names: List[str]
    record_traces: List[RecordTrace] = field(default_factory=list)
    flush_traces: List[FlushTrace] = field(default_factory=list)

    @property
    def total_steps(self) -> int:
        return len(self.record_traces) + len(self.flush_traces)

    def entry(self, step_index: int) -> TraceEntry:
        """Trace entry for 0-based step `step_index` (records first, then flushes)."""
        if step_index < 0 or step_index >= self.total_steps:
            raise IndexError(f"step {step_index} out of range (total={self.total_steps})")
        n = len(self.record_traces)
        if step_index < n:
            return self.record_traces[step_index]
        return self.flush_traces[step_index - n]

    def entries(self) -> List[TraceEntry]:
        return [*self.record_traces, *self.flush_traces]

    def step_label(self, step_index: int) -> str:
        n = len(self.record_traces)
        if step_index < n:
            return f"Record {step_index + 1} of {n}"
        return f"Flush {step_index - n + 1} of {len(self.flush_traces)}"

    def final_output(self) -> List[Record]:
        out: List[Record] = []
        for t in self.record_traces:
            out.extend(t.final)
        for t in self.flush_traces:
            out.extend(t.final)
        return out

    def stage_counts(self) -> List[Dict[str, Any]]:
        """Per-stage input/output/flushed record counts derived from pipe points."""
        counts = [
            {"stage_index": i, "stage": name, "input_records": 0, "output_records": 0, "flushed_records": 0}
            for i, name in enumerate(self.stage_names)
        ]
        for t in self.record_traces:
            for i, c in enumerate(counts):
                c["input_records"] += len(t.pipe_points[i])
                c["output_records"] += len(t.pipe_points[i + 1])
        for t in self.flush_traces:
            origin = counts[t.stage_index]
            origin["output_records"] += len(t.pipe_points[0])
            origin["flushed_records"] += len(t.pipe_points[0])
            for k in range(1, len(t.pipe_points)):
                c = counts[t.stage_index + k]
                c["input_records"] += len(t.pipe_points[k - 1])
                c["output_records"] += len(t.pipe_points[k])
        return counts

    def to_rows(self) -> List[Dict[str, Any]]:
        """One flat row per record per pipe point, for export."""
        rows: List[Dict[str, Any]] = []
        for step, entry in enumerate(self.entries()):
            origin = entry.stage_index if isinstance(entry, FlushTrace) else -1
            offset = origin + 1 if isinstance(entry, FlushTrace) else 0
            for k, point in enumerate(entry.pipe_points):
                pipe_point = k + offset
                stage_name = self.stage_names[pipe_point - 1] if pipe_point > 0 else "<input>"
                for slot, record in enumerate(point):
                    rows.append({
                        "step": step,
                        "kind": entry.kind,
                        "origin_stage": origin,
                        "pipe_point": pipe_point,
                        "stage_name": stage_name,
                        "slot": slot,
                        "text": record.rstrip(),
                    })
        return rows
