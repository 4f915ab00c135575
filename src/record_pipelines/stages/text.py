"""Text stages: locate, change, case, reverse, duplicate, literal.

All of these are record-at-a-time. LITERAL is the one exception that can
hold output back: it writes its record ahead of the first input record,
and if the input turns out to be empty it still writes it on flush.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..record import Record
from .base import Stage


class Locate(Stage):
    """Keep records containing `needle` (whole record or a field)."""
    name = "locate"
    keep_on_match = True

    def __init__(self, needle: str, pos: Optional[int] = None, length: Optional[int] = None, label: str = ""):
        super().__init__(label)
        self.needle = needle
        self.pos = pos
        self.length = length

    def _matches(self, record: Record) -> bool:
        if self.pos is None or self.length is None:
            return self.needle in record.as_str()
        return record.field_contains(self.pos, self.length, self.needle)

    def process(self, record: Record) -> List[Record]:
        return [record] if self._matches(record) == self.keep_on_match else []

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(needle=self.needle, pos=self.pos, length=self.length)
        return snap


class NLocate(Locate):
    """Drop records containing `needle`."""
    name = "nlocate"
    keep_on_match = False


class ChangeText(Stage):
    name = "change"

    def __init__(self, old: str, new: str, label: str = ""):
        super().__init__(label)
        self.old = old
        self.new = new

    def process(self, record: Record) -> List[Record]:
        return [Record.from_str(record.rstrip().replace(self.old, self.new))]


class UpperCase(Stage):
    name = "upper"

    def process(self, record: Record) -> List[Record]:
        return [Record.from_str(record.as_str().upper())]


class LowerCase(Stage):
    name = "lower"

    def process(self, record: Record) -> List[Record]:
        return [Record.from_str(record.as_str().lower())]


class ReverseText(Stage):
    # reverses the content, not the padding; result stays left aligned
    name = "reverse"

    def process(self, record: Record) -> List[Record]:
        return [Record.from_str(record.rstrip()[::-1])]


class DuplicateRecords(Stage):
    name = "duplicate"

    def __init__(self, copies: int, label: str = ""):
        super().__init__(label)
        self.copies = copies

    def process(self, record: Record) -> List[Record]:
        return [record] * (self.copies + 1)


class LiteralHeader(Stage):
    name = "literal"

    def __init__(self, text: str, label: str = ""):
        super().__init__(label)
        self.record = Record.from_str(text)
        self.emitted = False

    def process(self, record: Record) -> List[Record]:
        if self.emitted:
            return [record]
        self.emitted = True
        return [self.record, record]

    def has_pending(self) -> bool:
        return not self.emitted

    def flush(self) -> List[Record]:
        if self.emitted:
            return []
        self.emitted = True
        return [self.record]

    def snapshot(self) -> Dict[str, Any]:
        snap = super().snapshot()
        snap.update(text=self.record.rstrip(), emitted=self.emitted)
        return snap
