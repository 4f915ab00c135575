"""Pipeline DSL: commands and the text parser."""

from .commands import (
    Append, Change, Command, Count, Duplicate, FilterEq, FilterNe, Literal, Locate,
    Lower, NLocate, Reverse, Select, Skip, Sort, Take, Upper,
)
from .parser import parse_commands, parse_stage

__all__ = [
    "Command",
    "FilterEq",
    "FilterNe",
    "Select",
    "Take",
    "Skip",
    "Locate",
    "NLocate",
    "Change",
    "Upper",
    "Lower",
    "Reverse",
    "Duplicate",
    "Literal",
    "Append",
    "Count",
    "Sort",
    "parse_commands",
    "parse_stage",
]
