"""Fixed-width record buffer.

Every record is exactly RECORD_WIDTH bytes of ASCII, padded with spaces.

Construction rules:
- text is encoded as UTF-8 and truncated to the first 80 bytes
- every byte above 0x7F is replaced with `?`
- short input is padded with spaces

Field access never fails: ranges are clamped to the record, a range that
starts at or past the end reads as "" and a range that runs off the end
reads as the partial slice.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple, Union

from .errors import FieldOutOfBounds

RECORD_WIDTH = 80
PAD = b" "
REPLACEMENT = ord("?")


def _to_ascii(raw: bytes, width: int) -> bytes:
    clipped = raw[:width]
    return bytes(b if b < 0x80 else REPLACEMENT for b in clipped)


def clamp_field(start: int, length: int) -> Tuple[int, int]:
    """Clamp a (start, length) field to record bounds; returns (start, end)."""
    start = max(0, min(start, RECORD_WIDTH))
    end = max(start, min(start + max(length, 0), RECORD_WIDTH))
    return start, end


def check_field_bounds(start: int, length: int) -> None:
    if start < 0 or length < 0 or start + length > RECORD_WIDTH:
        raise FieldOutOfBounds(start, length, RECORD_WIDTH)


@dataclass(frozen=True)
class Record:
    data: bytes

    def __post_init__(self):
        normalized = _to_ascii(bytes(self.data), RECORD_WIDTH).ljust(RECORD_WIDTH, PAD)
        if normalized != self.data:
            object.__setattr__(self, "data", normalized)

    @classmethod
    def blank(cls) -> "Record":
        return cls(PAD * RECORD_WIDTH)

    @classmethod
    def from_str(cls, text: str) -> "Record":
        return cls.from_bytes(text.encode("utf-8"))

    @classmethod
    def from_bytes(cls, raw: Union[bytes, bytearray]) -> "Record":
        return cls(bytes(raw))

    # --- reading ---

    def as_bytes(self) -> bytes:
        return self.data

    def as_str(self) -> str:
        return self.data.decode("ascii")

    def rstrip(self) -> str:
        """Record text without trailing spaces (the output line form)."""
        return self.as_str().rstrip(" ")

    def field(self, start: int, length: int) -> str:
        s, e = clamp_field(start, length)
        return self.data[s:e].decode("ascii")

    def field_eq(self, start: int, length: int, value: str) -> bool:
        return self.field(start, length).strip() == value.strip()

    def field_eq_exact(self, start: int, length: int, value: str) -> bool:
        return self.field(start, length) == value

    def field_starts_with(self, start: int, length: int, prefix: str) -> bool:
        return self.field(start, length).lstrip(" ").startswith(prefix)

    def field_contains(self, start: int, length: int, needle: str) -> bool:
        return needle in self.field(start, length)

    def is_blank(self) -> bool:
        return self.data == PAD * RECORD_WIDTH

    # --- writing (returns a new record) ---

    def with_field(self, start: int, length: int, value: str) -> "Record":
        s, e = clamp_field(start, length)
        if s == e:
            return self
        payload = _to_ascii(value.encode("utf-8"), e - s)
        buf = bytearray(self.data)
        buf[s:e] = PAD * (e - s)
        buf[s:s + len(payload)] = payload
        return Record(bytes(buf))

    def __str__(self) -> str:
        return self.as_str()

    def __repr__(self) -> str:
        return f"Record({self.rstrip()!r})"
