"""Built-in stages (core set).

These implement:
- field filter (equal / not equal, trimmed comparison)
- field select into a blank record
- take first n
- skip first n

Text transforms live in `text.py`, buffering stages in `buffering.py`.
"""

from __future__ import annotations
from typing import Any, Dict, List, Sequence, Tuple

from ..record import Record
from .base import Stage


class Filter(Stage):
    name = "filter"

    def __init__(self, pos: int, length: int, value: str, negate: bool = False, label: str = ""):
        super().__init__(label)
        self.pos = pos
        self.length = length
        self.value = value
        self.negate = negate

    def process(self, record: Record) -> List[Record]:
        hit = record.field_eq(self.pos, self.length, self.value)
        return [record] if hit != self.negate else []

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(pos=self.pos, length=self.length, value=self.value, negate=self.negate)
        return snap


class SelectFields(Stage):
    name = "select"

    def __init__(self, fields: Sequence[Tuple[int, int, int]], label: str = ""):
        super().__init__(label)
        self.fields = tuple(tuple(f) for f in fields)

    def process(self, record: Record) -> List[Record]:
        out = Record.blank()
        for src, length, dst in self.fields:
            out = out.with_field(dst, length, record.field(src, length))
        return [out]

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap["fields"] = [list(f) for f in self.fields]
        return snap


class TakeFirst(Stage):
    name = "take"

    def __init__(self, n: int, label: str = ""):
        super().__init__(label)
        self.n = n
        self.seen = 0

    def process(self, record: Record) -> List[Record]:
        self.seen += 1
        return [record] if self.seen <= self.n else []

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(n=self.n, seen=self.seen)
        return snap


class SkipFirst(Stage):
    name = "skip"

    def __init__(self, n: int, label: str = ""):
        super().__init__(label)
        self.n = n
        self.seen = 0

    def process(self, record: Record) -> List[Record]:
        self.seen += 1
        return [record] if self.seen > self.n else []

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(n=self.n, seen=self.seen)
        return snap
