"""Stage interface.

Stages must:
- accept one Record and return the records it emits for it (usually zero or one)
- keep all run-local state in plain attributes, visible through `snapshot()`
- expose buffered output through `has_pending()` / `flush()` if they buffer

Stages are single-threaded and owned by exactly one executor run. The
compiler builds fresh instances for every run, so counters never leak
between runs.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List

from ..record import Record


class Stage(ABC):
    name: str = "stage"
    buffers: bool = False

    def __init__(self, label: str = ""):
        self.label = label or self.name

    @abstractmethod
    def process(self, record: Record) -> List[Record]:
        ...

    def process_batch(self, records: Iterable[Record]) -> List[Record]:
        """Same result as calling `process` once per record, in order."""
        out: List[Record] = []
        for r in records:
            out.extend(self.process(r))
        return out

    def has_pending(self) -> bool:
        return False

    def flush(self) -> List[Record]:
        return []

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of stage-local state."""
        return {"name": self.name, "label": self.label}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"
