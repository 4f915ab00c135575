"""Pipeline commands.

A Command is the validated, immutable description of one stage, produced
by the DSL parser or built directly in code. The compiler turns each
Command into a fresh Stage instance per run.

`describe()` renders the canonical DSL text for the command; it doubles
as the stage label shown in traces and analytics.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple, Union


def _quote(value: str) -> str:
    return f'"{value}"'


def _field(pos: Optional[int], length: Optional[int]) -> str:
    if pos is None or length is None:
        return ""
    return f"{pos},{length} "


@dataclass(frozen=True)
class FilterEq:
    pos: int
    length: int
    value: str

    def describe(self) -> str:
        return f"FILTER {self.pos},{self.length} = {_quote(self.value)}"


@dataclass(frozen=True)
class FilterNe:
    pos: int
    length: int
    value: str

    def describe(self) -> str:
        return f"FILTER {self.pos},{self.length} != {_quote(self.value)}"


@dataclass(frozen=True)
class Select:
    # (src_pos, length, dst_pos) triples, applied in order
    fields: Tuple[Tuple[int, int, int], ...]

    def describe(self) -> str:
        return "SELECT " + "; ".join(",".join(str(x) for x in f) for f in self.fields)


@dataclass(frozen=True)
class Take:
    n: int

    def describe(self) -> str:
        return f"TAKE {self.n}"


@dataclass(frozen=True)
class Skip:
    n: int

    def describe(self) -> str:
        return f"SKIP {self.n}"


@dataclass(frozen=True)
class Locate:
    needle: str
    pos: Optional[int] = None
    length: Optional[int] = None

    def describe(self) -> str:
        return f"LOCATE {_field(self.pos, self.length)}{_quote(self.needle)}"


@dataclass(frozen=True)
class NLocate:
    needle: str
    pos: Optional[int] = None
    length: Optional[int] = None

    def describe(self) -> str:
        return f"NLOCATE {_field(self.pos, self.length)}{_quote(self.needle)}"


@dataclass(frozen=True)
class Change:
    old: str
    new: str

    def describe(self) -> str:
        return f"CHANGE {_quote(self.old)} {_quote(self.new)}"


@dataclass(frozen=True)
class Upper:
    def describe(self) -> str:
        return "UPPER"


@dataclass(frozen=True)
class Lower:
    def describe(self) -> str:
        return "LOWER"


@dataclass(frozen=True)
class Reverse:
    def describe(self) -> str:
        return "REVERSE"


@dataclass(frozen=True)
class Duplicate:
    # extra copies; each record is written n + 1 times
    n: int

    def describe(self) -> str:
        return f"DUPLICATE {self.n}"


@dataclass(frozen=True)
class Literal:
    text: str

    def describe(self) -> str:
        return f"LITERAL {_quote(self.text)}"


@dataclass(frozen=True)
class Append:
    text: str

    def describe(self) -> str:
        return f"APPEND {_quote(self.text)}"


@dataclass(frozen=True)
class Count:
    def describe(self) -> str:
        return "COUNT"


@dataclass(frozen=True)
class Sort:
    pos: int = 0
    length: int = 80
    descending: bool = False

    def describe(self) -> str:
        text = f"SORT {self.pos},{self.length}"
        return text + " DESC" if self.descending else text


Command = Union[
    FilterEq, FilterNe, Select, Take, Skip,
    Locate, NLocate, Change, Upper, Lower, Reverse,
    Duplicate, Literal, Append, Count, Sort,
]
