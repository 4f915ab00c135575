"""Batch executor.

Stages are chained as generators: each one pulls from its upstream, runs
`process_batch` on chunks of `chunk_size` records, and once upstream is
exhausted yields its `flush()` output if it has any pending. With the
default chunk size of 1 no stage sees record k+1 before the downstream
stages have consumed everything produced for record k.

This is the reference semantics the RAT executor has to reproduce.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TypeVar
import logging

from ..record import Record
from ..stages.base import Stage
from .compiler import Pipeline

log = logging.getLogger("record_pipelines.batch")

T = TypeVar("T")


def empty_counts(stage_names: Iterable[str]) -> List[Dict[str, Any]]:
    return [
        {"stage_index": i, "stage": name, "input_records": 0, "output_records": 0, "flushed_records": 0}
        for i, name in enumerate(stage_names)
    ]


def _run_stage(
    stage: Stage,
    upstream: Iterator[Record],
    chunk_size: int,
    counts: Optional[Dict[str, Any]],
) -> Iterator[Record]:
    chunk: List[Record] = []

    def drain(batch: List[Record]) -> List[Record]:
        out = stage.process_batch(batch)
        if counts is not None:
            counts["input_records"] += len(batch)
            counts["output_records"] += len(out)
        return out

    for record in upstream:
        chunk.append(record)
        if len(chunk) >= chunk_size:
            batch, chunk = chunk, []
            yield from drain(batch)
    if chunk:
        yield from drain(chunk)
    if stage.has_pending():
        flushed = stage.flush()
        if counts is not None:
            counts["output_records"] += len(flushed)
            counts["flushed_records"] += len(flushed)
        yield from flushed


def iter_batch(
    pipeline: Pipeline,
    records: Iterable[Record],
    *,
    chunk_size: int = 1,
    stage_counts: Optional[List[Dict[str, Any]]] = None,
) -> Iterator[Record]:
    """Lazily run `records` through fresh stages of `pipeline`."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    stream: Iterator[Record] = iter(records)
    for i, stage in enumerate(pipeline.new_stages()):
        counts = stage_counts[i] if stage_counts is not None else None
        stream = _run_stage(stage, stream, chunk_size, counts)
    return stream


def run_batch(pipeline: Pipeline, records: Iterable[Record]) -> List[Record]:
    return list(iter_batch(pipeline, records))


class BatchExecutor:
    """Iterable batch run with terminal reductions.

    Every iteration builds fresh stages, so pass a re-iterable sequence
    of records if the executor is consumed more than once. `stage_counts`
    reflects the most recent iteration.
    """

    def __init__(self, pipeline: Pipeline, records: Iterable[Record], *, chunk_size: int = 1):
        self.pipeline = pipeline
        self.records = records
        self.chunk_size = chunk_size
        self.stage_counts: List[Dict[str, Any]] = empty_counts(pipeline.stage_names)

    def __iter__(self) -> Iterator[Record]:
        self.stage_counts = empty_counts(self.pipeline.stage_names)
        return iter_batch(self.pipeline, self.records, chunk_size=self.chunk_size, stage_counts=self.stage_counts)

    def collect(self) -> List[Record]:
        out = list(self)
        log.debug(f"Batch run complete stages={len(self.pipeline)} output={len(out)}")
        return out

    def count(self) -> int:
        return sum(1 for _ in self)

    def fold(self, init: T, fn: Callable[[T, Record], T]) -> T:
        acc = init
        for record in self:
            acc = fn(acc, record)
        return acc

    def first(self) -> Optional[Record]:
        return next(iter(self), None)

    def last(self) -> Optional[Record]:
        result = None
        for record in self:
            result = record
        return result

    def any(self, pred: Callable[[Record], bool]) -> bool:
        return any(pred(r) for r in self)

    def all(self, pred: Callable[[Record], bool]) -> bool:
        return all(pred(r) for r in self)
