"""Pipeline compiler.

`compile_pipeline(commands)` validates an ordered list of commands and
returns an immutable Pipeline. The Pipeline holds commands, not stages:
`new_stages()` builds a fresh stage list for every run so Take/Skip
counters and buffers are never shared between runs or executors.

Field specs running past the record width are accepted (the data path
clamps them) and reported as warnings.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple
import logging

from ..dsl import commands as c
from ..dsl.parser import parse_commands
from ..errors import CompileError, FieldOutOfBounds
from ..record import check_field_bounds
from ..stages.base import Stage
from ..stages.registry import describe, make_stage, make_stages
from ..utils.fingerprint import pipeline_fingerprint

log = logging.getLogger("record_pipelines.compiler")


@dataclass(frozen=True)
class Pipeline:
    commands: Tuple[object, ...]
    stage_names: Tuple[str, ...]

    def new_stages(self) -> List[Stage]:
        return make_stages(self.commands)

    @property
    def pipe_points(self) -> int:
        return len(self.commands) + 1

    @property
    def fingerprint(self) -> str:
        return pipeline_fingerprint(self.stage_names)

    def to_text(self) -> str:
        if not self.stage_names:
            return ""
        first, *rest = self.stage_names
        lines = [f"PIPE {first}"] + [f"| {name}" for name in rest]
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.commands)


def _non_negative(label: str, **values: object) -> None:
    for key, v in values.items():
        if v is None:
            continue
        if not isinstance(v, int) or isinstance(v, bool) or v < 0:
            raise CompileError(f"{label}: {key} must be a non-negative integer, got {v!r}")


def _fields(cmd: object) -> Iterable[Tuple[int, int]]:
    if isinstance(cmd, (c.FilterEq, c.FilterNe, c.Sort)):
        yield cmd.pos, cmd.length
    elif isinstance(cmd, (c.Locate, c.NLocate)) and cmd.pos is not None:
        yield cmd.pos, cmd.length
    elif isinstance(cmd, c.Select):
        for src, length, dst in cmd.fields:
            yield src, length
            yield dst, length


def validate_command(cmd: object) -> None:
    """Raise CompileError if the command cannot be turned into a stage."""
    label = describe(cmd)
    if isinstance(cmd, (c.FilterEq, c.FilterNe)):
        _non_negative(label, pos=cmd.pos, length=cmd.length)
        if not isinstance(cmd.value, str):
            raise CompileError(f"{label}: value must be a string")
    elif isinstance(cmd, c.Select):
        if not cmd.fields:
            raise CompileError("SELECT requires at least one field specification")
        for f in cmd.fields:
            if len(f) != 3:
                raise CompileError(f"{label}: field {f!r} requires src_pos,len,dest_pos")
            _non_negative(label, src_pos=f[0], length=f[1], dest_pos=f[2])
    elif isinstance(cmd, (c.Take, c.Skip, c.Duplicate)):
        _non_negative(label, n=cmd.n)
    elif isinstance(cmd, (c.Locate, c.NLocate)):
        if not cmd.needle:
            raise CompileError(f"{label}: search string must not be empty")
        if (cmd.pos is None) != (cmd.length is None):
            raise CompileError(f"{label}: pos and len must be given together")
        _non_negative(label, pos=cmd.pos, length=cmd.length)
    elif isinstance(cmd, c.Change):
        if not cmd.old:
            raise CompileError(f"{label}: old string must not be empty")
    elif isinstance(cmd, c.Sort):
        _non_negative(label, pos=cmd.pos, length=cmd.length)


def compile_pipeline(commands: Sequence[object]) -> Pipeline:
    """Validate commands and return an immutable Pipeline."""
    commands = tuple(commands)
    for i, cmd in enumerate(commands):
        validate_command(cmd)
        # builds once to surface unknown command types at compile time
        make_stage(cmd)
        for start, length in _fields(cmd):
            try:
                check_field_bounds(start, length)
            except FieldOutOfBounds as e:
                log.warning(f"Stage {i} ({describe(cmd)}): {e}; values will be clamped")
    pipeline = Pipeline(commands=commands, stage_names=tuple(describe(cmd) for cmd in commands))
    log.debug(f"Compiled pipeline stages={len(pipeline)} fingerprint={pipeline.fingerprint[:12]}")
    return pipeline


def compile_text(text: str) -> Pipeline:
    """Parse DSL text and compile it."""
    return compile_pipeline(parse_commands(text))
