"""Generate summary report after a run.

Called at the end of run_files() when the run has an output directory.
Plain text, meant to be read in a terminal or attached to a ticket.
"""

from __future__ import annotations
import os
from datetime import datetime
from typing import Any, Dict, Optional

_RULE = "=" * 70


def _section(lines: list, title: str) -> None:
    lines.append(_RULE)
    lines.append(title)
    lines.append(_RULE)
    lines.append("")


def generate_summary_report(out_dir: str, run_id: str, manifest: Dict[str, Any], config: Optional[Dict[str, Any]] = None) -> str:
    """Write `<out_dir>/reports/<run_id>_summary.txt` and return its path."""
    report_path = os.path.join(out_dir, "reports", f"{run_id}_summary.txt")
    os.makedirs(os.path.dirname(report_path), exist_ok=True)

    lines = []
    _section(lines, "RECORD PIPELINES - RUN SUMMARY REPORT")
    lines.append(f"Run ID: {run_id}")
    lines.append(f"Mode: {manifest.get('mode', 'N/A')}")
    lines.append(f"Pipeline Fingerprint: {manifest.get('pipeline_fingerprint', 'N/A')}")
    lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("")

    _section(lines, "PIPELINE")
    stages = manifest.get("stages", [])
    if not stages:
        lines.append("(empty pipeline: input is copied to output)")
    for i, name in enumerate(stages):
        lines.append(f"  {i:>3}  {name}")
    lines.append("")

    _section(lines, "STATISTICS")
    total_in = manifest.get("input_records", 0)
    total_out = manifest.get("output_records", 0)
    lines.append(f"Input Records: {total_in:,}")
    lines.append(f"Output Records: {total_out:,}")
    if manifest.get("total_steps") is not None:
        lines.append(f"RAT Steps: {manifest['total_steps']:,} ({manifest.get('flush_steps', 0)} flush)")
    if total_in == 0:
        lines.append("")
        lines.append("WARNING: No input records were read!")
        lines.append("   Possible reasons:")
        lines.append("   - Input file is empty")
        lines.append("   - Input file contains only blank lines")
    lines.append("")

    counts = manifest.get("stage_counts") or []
    if counts:
        _section(lines, "STAGE COUNTS")
        lines.append(f"  {'#':>3}  {'in':>8}  {'out':>8}  {'flushed':>8}  stage")
        for c in counts:
            lines.append(
                f"  {c['stage_index']:>3}  {c['input_records']:>8,}  {c['output_records']:>8,}  "
                f"{c['flushed_records']:>8,}  {c['stage']}"
            )
        lines.append("")

    _section(lines, "OUTPUT LOCATIONS")
    for key, path in (manifest.get("outputs") or {}).items():
        if path:
            lines.append(f"{key}: {path}")
    lines.append("")

    if config:
        _section(lines, "CONFIGURATION")
        for section in ("execution", "trace", "analytics"):
            for k, v in (config.get(section) or {}).items():
                lines.append(f"{section}.{k}: {v}")
        lines.append("")

    report_text = "\n".join(lines)

    with open(report_path, "w", encoding="utf-8") as f:
        f.write(report_text)

    return report_path
