import json, hashlib
from typing import Iterable

from ..record import RECORD_WIDTH


def pipeline_fingerprint(stage_names: Iterable[str]) -> str:
    """sha256 of the canonical stage list plus the record width.

    Stage names come from the command descriptions, so two DSL files that
    differ only in layout or comments share a fingerprint.
    """
    payload = {"width": RECORD_WIDTH, "stages": list(stage_names)}
    blob = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()
