"""Shared pytest fixtures for the record-pipelines test suite.

Provides the employee sample layout used across tests:

    cols  0-7   last name
    cols  8-17  first name
    cols 18-27  department
    cols 28-35  salary
"""

import pytest

from record_pipelines.pipeline.compiler import compile_text
from record_pipelines.record import Record


def employee(last: str, first: str, dept: str, salary: str) -> str:
    return f"{last:<8}{first:<10}{dept:<10}{salary}"


EMPLOYEES = [
    employee("SMITH", "JOHN", "SALES", "00050000"),
    employee("JONES", "MARY", "ENGINEER", "00075000"),
    employee("BROWN", "ALICE", "SALES", "00062000"),
    employee("DAVIS", "BOB", "MARKETING", "00048000"),
    employee("WILSON", "EVE", "ENGINEER", "00081000"),
]

SCENARIO_PIPELINE = 'PIPE FILTER 18,10 = "SALES"\n| SELECT 0,8,0; 28,8,8\n?\n'


@pytest.fixture
def employee_lines():
    return list(EMPLOYEES)


@pytest.fixture
def employees():
    """The five sample employees as records."""
    return [Record.from_str(line) for line in EMPLOYEES]


@pytest.fixture
def scenario_records():
    """The two-record input from the SALES filter scenario."""
    return [Record.from_str(line) for line in EMPLOYEES[:2]]


@pytest.fixture
def scenario_pipeline():
    return compile_text(SCENARIO_PIPELINE)


@pytest.fixture
def make_pipeline():
    """Factory fixture: DSL text -> compiled Pipeline."""
    def _make(text: str):
        return compile_text(text)
    return _make


@pytest.fixture
def write_files(tmp_path):
    """Write a pipeline file and an input file; returns their paths as strings."""
    def _write(pipeline_text: str = SCENARIO_PIPELINE, lines=None, name: str = "job"):
        pipe = tmp_path / f"{name}.pipe"
        data = tmp_path / f"{name}.data"
        pipe.write_text(pipeline_text, encoding="utf-8")
        body = "\n".join(EMPLOYEES[:2] if lines is None else lines)
        data.write_text(body + ("\n" if body else ""), encoding="utf-8")
        return str(pipe), str(data)
    return _write


def texts(records):
    """Right-trimmed text of each record, for readable assertions."""
    return [r.rstrip() for r in records]
