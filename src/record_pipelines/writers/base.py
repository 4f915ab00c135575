"""Trace writers.

A TraceWriter exports a RatDebugTrace from a finished run so it can be
inspected outside the process (notebooks, viewers, diffing two runs).
"""

from __future__ import annotations
import os
from abc import ABC, abstractmethod

from ..pipeline.trace import RatDebugTrace


class TraceWriter(ABC):
    name: str
    extension: str

    def path_for(self, out_dir: str, run_id: str) -> str:
        return os.path.join(out_dir, "traces", f"{run_id}.{self.extension}")

    @abstractmethod
    def write(self, trace: RatDebugTrace, *, out_dir: str, run_id: str) -> str:
        """Write the trace and return the output path."""
        raise NotImplementedError
