"""Record-at-a-time (RAT) executor.

Replays a compiled Pipeline one step at a time and records every pipe
point, so a viewer can walk through the run. Control returns to the
caller after each `step()`; nothing runs in the background.

States (forward only, single pass):

    NOT_STARTED -> CONSUMING_INPUT -> FLUSHING -> DONE

FLUSHING is skipped when no stage holds pending output, and
CONSUMING_INPUT is skipped for empty input.

- CONSUMING_INPUT: each step feeds exactly one input record through every
  stage and yields a RecordTrace.
- FLUSHING: each step asks the next pending stage (ascending index) to
  flush, pushes what it releases through the downstream stages and yields
  a FlushTrace. Every stage flushes at most once.
- DONE: `step()` returns None from here on.

Input is read one record ahead, so `state` is already FLUSHING or DONE
right after the step that consumed the last record.

To reset, build a new executor: stages are created fresh per executor
and are never reused.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional
import logging

from ..record import Record
from .compiler import Pipeline
from .trace import FlushTrace, RatDebugTrace, RecordTrace, TraceEntry

log = logging.getLogger("record_pipelines.rat")

_EXHAUSTED = object()


class RatState(str, Enum):
    NOT_STARTED = "not_started"
    CONSUMING_INPUT = "consuming_input"
    FLUSHING = "flushing"
    DONE = "done"


class RatExecutor:
    def __init__(self, pipeline: Pipeline, records: Iterable[Record]):
        self.pipeline = pipeline
        self._stages = pipeline.new_stages()
        self._input: Iterator[Record] = iter(records)
        self._lookahead: Any = _EXHAUSTED
        self._state = RatState.NOT_STARTED
        self._trace = RatDebugTrace(stage_names=list(pipeline.stage_names))
        self._next_index = 0
        self._flush_cursor = 0
        self._current_step = 0

    # --- inspection ---

    @property
    def state(self) -> RatState:
        return self._state

    @property
    def is_done(self) -> bool:
        return self._state is RatState.DONE

    @property
    def current_step(self) -> int:
        """Steps taken so far; the latest entry is trace index current_step - 1."""
        return self._current_step

    def trace(self) -> RatDebugTrace:
        """Trace accumulated so far (a copy; entries themselves are immutable)."""
        return RatDebugTrace(
            stage_names=list(self._trace.stage_names),
            record_traces=list(self._trace.record_traces),
            flush_traces=list(self._trace.flush_traces),
        )

    def stage_snapshots(self) -> List[Dict[str, Any]]:
        return [stage.snapshot() for stage in self._stages]

    # --- stepping ---

    def step(self) -> Optional[TraceEntry]:
        if self._state is RatState.NOT_STARTED:
            self._lookahead = next(self._input, _EXHAUSTED)
            if self._lookahead is _EXHAUSTED:
                self._end_of_input()
            else:
                self._state = RatState.CONSUMING_INPUT
        if self._state is RatState.CONSUMING_INPUT:
            return self._consume()
        if self._state is RatState.FLUSHING:
            return self._flush_next()
        return None

    def __iter__(self) -> Iterator[TraceEntry]:
        while True:
            entry = self.step()
            if entry is None:
                return
            yield entry

    def run_all(self) -> RatDebugTrace:
        for _ in self:
            pass
        return self.trace()

    # --- internals ---

    def _propagate(self, records: List[Record], start: int) -> List[List[Record]]:
        """Push records through stages[start:], returning the output of each."""
        points: List[List[Record]] = []
        current = records
        for stage in self._stages[start:]:
            out: List[Record] = []
            for r in current:
                out.extend(stage.process(r))
            points.append(out)
            current = out
        return points

    def _consume(self) -> RecordTrace:
        record = self._lookahead
        self._lookahead = next(self._input, _EXHAUSTED)
        entry = RecordTrace(
            record_index=self._next_index,
            pipe_points=[[record]] + self._propagate([record], 0),
        )
        self._next_index += 1
        self._trace.record_traces.append(entry)
        self._current_step += 1
        if self._lookahead is _EXHAUSTED:
            self._end_of_input()
        return entry

    def _next_pending(self) -> Optional[int]:
        for i in range(self._flush_cursor, len(self._stages)):
            if self._stages[i].has_pending():
                return i
        return None

    def _end_of_input(self) -> None:
        pending = self._next_pending()
        self._state = RatState.DONE if pending is None else RatState.FLUSHING
        log.debug(f"End of input after {self._next_index} records; state={self._state.value}")

    def _flush_next(self) -> Optional[FlushTrace]:
        origin = self._next_pending()
        if origin is None:
            self._state = RatState.DONE
            return None
        released = self._stages[origin].flush()
        entry = FlushTrace(
            stage_index=origin,
            pipe_points=[released] + self._propagate(released, origin + 1),
        )
        self._flush_cursor = origin + 1
        self._trace.flush_traces.append(entry)
        self._current_step += 1
        if self._next_pending() is None:
            self._state = RatState.DONE
            log.debug(f"RAT run complete steps={self._current_step}")
        return entry


def rat_start(pipeline: Pipeline, records: Iterable[Record]) -> RatExecutor:
    return RatExecutor(pipeline, records)
