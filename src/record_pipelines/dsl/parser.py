"""DSL parser.

Pipelines are written CMS Pipelines style:

    PIPE FILTER 18,10 = "SALES"
    | SELECT 0,8,0; 28,8,8
    | TAKE 10
    ?

Rules:
- blank lines and lines starting with `#` are ignored
- a leading `PIPE` keyword is optional; a bare `PIPE` line is skipped
- stages are separated by `|`, either at the start of a continuation line
  or inline (`SKIP 1 | TAKE 1`); `|` inside a quoted value is literal
- a trailing `?` ends the pipeline
- keywords are case-insensitive; values are double-quoted

Any problem raises ParseError with the 1-based line number.
"""

from __future__ import annotations
import re
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import ParseError
from .commands import (
    Append, Change, Command, Count, Duplicate, FilterEq, FilterNe, Literal, Locate,
    Lower, NLocate, Reverse, Select, Skip, Sort, Take, Upper,
)

_NUMBER = re.compile(r"^[0-9]+$")
_QUOTED = re.compile(r'^"([^"]*)"$')
_TWO_QUOTED = re.compile(r'^"([^"]*)"\s+"([^"]*)"$')


class _LineError(Exception):
    """Raised by operand parsers; the caller attaches the line number."""


def _split_segments(text: str) -> List[str]:
    """Split a line on `|` outside double quotes."""
    segments: List[str] = []
    buf: List[str] = []
    in_quote = False
    for ch in text:
        if ch == '"':
            in_quote = not in_quote
        if ch == "|" and not in_quote:
            segments.append("".join(buf))
            buf = []
            continue
        buf.append(ch)
    if in_quote:
        raise _LineError("Unterminated quoted string")
    segments.append("".join(buf))
    return segments


def _number(text: str, what: str) -> int:
    text = text.strip()
    if not _NUMBER.match(text):
        raise _LineError(f"Invalid {what} number: '{text}'")
    return int(text)


def _field_spec(text: str) -> Tuple[int, int]:
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        raise _LineError(f"Field spec '{text.strip()}' requires pos,len")
    return _number(parts[0], "position"), _number(parts[1], "length")


def _quoted(text: str) -> str:
    text = text.strip()
    m = _QUOTED.match(text)
    if not m:
        raise _LineError(f"Value must be quoted: {text}")
    return m.group(1)


def _no_operands(keyword: str, rest: str) -> None:
    if rest:
        raise _LineError(f"{keyword} takes no operands")


def _count_operand(keyword: str, rest: str) -> int:
    if not _NUMBER.match(rest):
        raise _LineError(f"{keyword} requires a number")
    return int(rest)


def _parse_filter(rest: str) -> Command:
    # operator search stops at the value so "=" inside quotes is ignored
    head = rest.split('"', 1)[0]
    if "!=" in head:
        idx, op_len, negate = head.index("!="), 2, True
    elif "=" in head:
        idx, op_len, negate = head.index("="), 1, False
    else:
        raise _LineError("FILTER requires = or != operator")
    spec = rest[:idx].strip()
    if not spec:
        raise _LineError("FILTER requires pos,len before operator")
    pos, length = _field_spec(spec)
    value = _quoted(rest[idx + op_len:])
    return FilterNe(pos, length, value) if negate else FilterEq(pos, length, value)


def _parse_select(rest: str) -> Command:
    fields = []
    for part in rest.split(";"):
        part = part.strip()
        if not part:
            continue
        nums = [p.strip() for p in part.split(",")]
        if len(nums) != 3:
            raise _LineError(f"SELECT field '{part}' requires src_pos,len,dest_pos")
        if not all(_NUMBER.match(n) for n in nums):
            raise _LineError(f"Invalid number in SELECT field '{part}'")
        fields.append((int(nums[0]), int(nums[1]), int(nums[2])))
    if not fields:
        raise _LineError("SELECT requires at least one field specification")
    return Select(tuple(fields))


def _locate_operands(keyword: str, rest: str) -> Tuple[str, Optional[int], Optional[int]]:
    if not rest:
        raise _LineError(f'{keyword} requires a quoted string')
    if rest.startswith('"'):
        return _quoted(rest), None, None
    spec, sep, tail = rest.partition('"')
    if not sep:
        raise _LineError(f"Value must be quoted: {rest}")
    pos, length = _field_spec(spec)
    return _quoted(sep + tail), pos, length


def _parse_locate(rest: str) -> Command:
    needle, pos, length = _locate_operands("LOCATE", rest)
    return Locate(needle, pos, length)


def _parse_nlocate(rest: str) -> Command:
    needle, pos, length = _locate_operands("NLOCATE", rest)
    return NLocate(needle, pos, length)


def _parse_change(rest: str) -> Command:
    m = _TWO_QUOTED.match(rest)
    if not m:
        raise _LineError('CHANGE requires "old" "new"')
    return Change(m.group(1), m.group(2))


def _parse_sort(rest: str) -> Command:
    words = rest.split()
    descending = False
    if words and words[-1].upper() in ("ASC", "DESC"):
        descending = words.pop().upper() == "DESC"
    if not words:
        return Sort(descending=descending)
    if len(words) != 1:
        raise _LineError(f"SORT takes pos,len [ASC|DESC], got '{rest}'")
    pos, length = _field_spec(words[0])
    return Sort(pos, length, descending)


def _simple(keyword: str, factory: Callable[[], Command]) -> Callable[[str], Command]:
    def parse(rest: str) -> Command:
        _no_operands(keyword, rest)
        return factory()
    return parse


_PARSERS: Dict[str, Callable[[str], Command]] = {
    "FILTER": _parse_filter,
    "SELECT": _parse_select,
    "TAKE": lambda rest: Take(_count_operand("TAKE", rest)),
    "SKIP": lambda rest: Skip(_count_operand("SKIP", rest)),
    "LOCATE": _parse_locate,
    "NLOCATE": _parse_nlocate,
    "CHANGE": _parse_change,
    "UPPER": _simple("UPPER", Upper),
    "LOWER": _simple("LOWER", Lower),
    "REVERSE": _simple("REVERSE", Reverse),
    "DUPLICATE": lambda rest: Duplicate(_count_operand("DUPLICATE", rest)),
    "LITERAL": lambda rest: Literal(_quoted(rest)),
    "APPEND": lambda rest: Append(_quoted(rest)),
    "COUNT": _simple("COUNT", Count),
    "SORT": _parse_sort,
}


def keywords() -> List[str]:
    return sorted(_PARSERS)


def parse_stage(segment: str) -> Optional[Command]:
    """Parse one stage segment; returns None for an empty segment."""
    segment = segment.strip()
    if segment.endswith("?"):
        segment = segment[:-1].rstrip()
    if not segment:
        return None
    parts = segment.split(None, 1)
    keyword = parts[0].upper()
    rest = parts[1].strip() if len(parts) > 1 else ""
    if keyword == "PIPE":
        return parse_stage(rest)
    parser = _PARSERS.get(keyword)
    if parser is None:
        raise _LineError(f"Unknown command: {keyword}")
    return parser(rest)


def parse_commands(text: str) -> List[Command]:
    """Parse pipeline DSL text into commands, in order."""
    commands: List[Command] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            for segment in _split_segments(stripped):
                cmd = parse_stage(segment)
                if cmd is not None:
                    commands.append(cmd)
        except _LineError as e:
            raise ParseError(lineno, str(e)) from None
    return commands
