"""Run output writers.

We keep writers simple and robust:
- write the pipeline output text (creating parent directories)
- append JSONL rows (trace export)
- write a run manifest at the end
"""

from __future__ import annotations
from typing import Any, Dict, Iterable
import os
import json


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_output_text(path: str, text: str) -> None:
    _ensure_parent(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def append_jsonl(path: str, rows: Iterable[Dict[str, Any]]) -> None:
    _ensure_parent(path)
    with open(path, "a", encoding="utf-8") as f:
        for r in rows:
            f.write(json.dumps(r, ensure_ascii=False) + "\n")


def write_manifest(path: str, manifest: Dict[str, Any]) -> None:
    _ensure_parent(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)
