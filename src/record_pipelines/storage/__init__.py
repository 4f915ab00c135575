"""Run output storage (local filesystem)."""

from .writer import append_jsonl, write_manifest, write_output_text

__all__ = [
    "append_jsonl",
    "write_manifest",
    "write_output_text",
]
