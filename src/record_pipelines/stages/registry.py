"""Stage registry.

Maps each command type to a factory that builds a fresh Stage. The
compiler calls `make_stages` once per executor run.

Add a stage kind without touching the executors:

    register_stage(MyCommand, lambda cmd, label: MyStage(cmd.x, label=label))
"""

from __future__ import annotations
from typing import Callable, Dict, List, Sequence

from ..dsl import commands as c
from ..errors import CompileError
from .base import Stage
from .buffering import AppendFooter, CountRecords, SortRecords
from .impl import Filter, SelectFields, SkipFirst, TakeFirst
from .text import (
    ChangeText, DuplicateRecords, LiteralHeader, Locate, LowerCase, NLocate,
    ReverseText, UpperCase,
)

StageFactory = Callable[[object, str], Stage]

_FACTORIES: Dict[type, StageFactory] = {
    c.FilterEq: lambda cmd, label: Filter(cmd.pos, cmd.length, cmd.value, negate=False, label=label),
    c.FilterNe: lambda cmd, label: Filter(cmd.pos, cmd.length, cmd.value, negate=True, label=label),
    c.Select: lambda cmd, label: SelectFields(cmd.fields, label=label),
    c.Take: lambda cmd, label: TakeFirst(cmd.n, label=label),
    c.Skip: lambda cmd, label: SkipFirst(cmd.n, label=label),
    c.Locate: lambda cmd, label: Locate(cmd.needle, cmd.pos, cmd.length, label=label),
    c.NLocate: lambda cmd, label: NLocate(cmd.needle, cmd.pos, cmd.length, label=label),
    c.Change: lambda cmd, label: ChangeText(cmd.old, cmd.new, label=label),
    c.Upper: lambda cmd, label: UpperCase(label=label),
    c.Lower: lambda cmd, label: LowerCase(label=label),
    c.Reverse: lambda cmd, label: ReverseText(label=label),
    c.Duplicate: lambda cmd, label: DuplicateRecords(cmd.n, label=label),
    c.Literal: lambda cmd, label: LiteralHeader(cmd.text, label=label),
    c.Append: lambda cmd, label: AppendFooter(cmd.text, label=label),
    c.Count: lambda cmd, label: CountRecords(label=label),
    c.Sort: lambda cmd, label: SortRecords(cmd.pos, cmd.length, cmd.descending, label=label),
}


def register_stage(command_type: type, factory: StageFactory) -> None:
    """Register a stage factory for a new command type."""
    if command_type in _FACTORIES:
        raise ValueError(f"Stage for '{command_type.__name__}' already registered")
    _FACTORIES[command_type] = factory


def list_stages() -> List[str]:
    return [t.__name__ for t in _FACTORIES]


def describe(command: object) -> str:
    fn = getattr(command, "describe", None)
    return fn() if callable(fn) else type(command).__name__


def make_stage(command: object) -> Stage:
    factory = _FACTORIES.get(type(command))
    if factory is None:
        raise CompileError(
            f"Unknown command: {type(command).__name__}. "
            f"Register it in record_pipelines.stages.registry"
        )
    return factory(command, describe(command))


def make_stages(commands: Sequence[object]) -> List[Stage]:
    return [make_stage(cmd) for cmd in commands]
