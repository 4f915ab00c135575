"""Error types.

Only the parse/compile boundary can fail. Once a Pipeline is compiled,
both executors are infallible: field bounds are clamped on the data path
and `FieldOutOfBounds` is used for diagnostics only.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all record-pipelines errors."""


class ParseError(PipelineError):
    """Malformed DSL line. `line` is 1-based."""

    def __init__(self, line: int, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(f"Line {line}: {reason}")


class CompileError(PipelineError):
    """A structurally invalid command reached the compiler."""


class FieldOutOfBounds(PipelineError):
    def __init__(self, start: int, length: int, width: int):
        self.start = start
        self.length = length
        self.width = width
        super().__init__(
            f"field {start},{length} extends past record width {width}"
        )
