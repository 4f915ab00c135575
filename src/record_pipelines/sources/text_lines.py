"""Record text source.

Record text format:
- one record per line; only `\n` ends a line and a trailing `\r` is dropped
- empty lines are skipped
- each line is padded/truncated to 80 bytes, non-ASCII bytes become `?`

Files are read as bytes so one input byte is always one record byte.

Output uses the same format in reverse: each record with its trailing
spaces removed, joined with newlines.
"""

from __future__ import annotations
import os
from typing import Any, Dict, Iterable, Iterator, List

from ..record import Record


def _line_body(line: bytes) -> bytes:
    if line.endswith(b"\n"):
        line = line[:-1]
    if line.endswith(b"\r"):
        line = line[:-1]
    return line


def iter_record_bytes(lines: Iterable[bytes]) -> Iterator[Record]:
    for line in lines:
        body = _line_body(line)
        if body:
            yield Record.from_bytes(body)


def iter_records(lines: Iterable[str]) -> Iterator[Record]:
    for line in lines:
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        if line:
            yield Record.from_str(line)


def parse_records(text: str) -> List[Record]:
    return list(iter_records(text.split("\n")))


def format_records(records: Iterable[Record]) -> str:
    return "\n".join(r.rstrip() for r in records)


class RecordFileSource:
    """Streams records from a file without loading it whole."""

    def __init__(self, path: str):
        self.path = path
        self.name = os.path.splitext(os.path.basename(path))[0] or "input"

    def metadata(self) -> Dict[str, Any]:
        return {"path": self.path, "bytes": os.path.getsize(self.path)}

    def count(self) -> int:
        with open(self.path, "rb") as f:
            return sum(1 for line in f if _line_body(line))

    def stream(self) -> Iterator[Record]:
        with open(self.path, "rb") as f:
            yield from iter_record_bytes(f)


def read_records(path: str) -> List[Record]:
    return list(RecordFileSource(path).stream())
