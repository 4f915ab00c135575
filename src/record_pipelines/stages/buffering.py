"""Buffering stages.

These hold output back until end of input, when the executor asks them
to flush. COUNT and SORT absorb every record; APPEND passes records
through and only holds its footer. In RAT mode each flush shows up as
its own FlushTrace step.
"""

from __future__ import annotations
from typing import Any, Dict, List

from ..record import Record, clamp_field
from .base import Stage


class CountRecords(Stage):
    """Write one record holding the decimal count of input records."""
    name = "count"
    buffers = True

    def __init__(self, label: str = ""):
        super().__init__(label)
        self.count = 0
        self.flushed = False

    def process(self, record: Record) -> List[Record]:
        self.count += 1
        return []

    def has_pending(self) -> bool:
        return not self.flushed

    def flush(self) -> List[Record]:
        if self.flushed:
            return []
        self.flushed = True
        return [Record.from_str(str(self.count))]

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(count=self.count, flushed=self.flushed)
        return snap


class SortRecords(Stage):
    """Stable sort on the bytes of one field."""
    name = "sort"
    buffers = True

    def __init__(self, pos: int = 0, length: int = 80, descending: bool = False, label: str = ""):
        super().__init__(label)
        self.pos = pos
        self.length = length
        self.descending = descending
        self.buffer: List[Record] = []

    def process(self, record: Record) -> List[Record]:
        self.buffer.append(record)
        return []

    def has_pending(self) -> bool:
        return bool(self.buffer)

    def flush(self) -> List[Record]:
        start, end = clamp_field(self.pos, self.length)
        out = sorted(self.buffer, key=lambda r: r.data[start:end], reverse=self.descending)
        self.buffer = []
        return out

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(pos=self.pos, length=self.length, descending=self.descending, buffered=len(self.buffer))
        return snap


class AppendFooter(Stage):
    """Pass records through, then write one literal record at end of input."""
    name = "append"

    def __init__(self, text: str, label: str = ""):
        super().__init__(label)
        self.record = Record.from_str(text)
        self.flushed = False

    def process(self, record: Record) -> List[Record]:
        return [record]

    def has_pending(self) -> bool:
        return not self.flushed

    def flush(self) -> List[Record]:
        if self.flushed:
            return []
        self.flushed = True
        return [self.record]

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(text=self.record.rstrip(), flushed=self.flushed)
        return snap
