"""Pipeline run orchestration (local).

Local runner:
- reads the pipeline DSL and the record file
- compiles once, then runs in batch or RAT mode
- optionally exports the RAT trace, per-stage analytics (Parquet),
  a run manifest and a summary report into the run output directory

Parse and compile errors propagate before any record is processed, so a
failed run never produces partial output.

This module is the entrypoint used by the CLI.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
import os, time, logging
from tqdm import tqdm

from ..record import Record
from ..sources.text_lines import RecordFileSource, format_records, parse_records
from ..storage.writer import write_manifest
from ..writers.registry import get_trace_writer
from ..analytics.sink import AnalyticsSink
from ..analytics.schemas import events_from_counts
from ..run_id import resolve_out_dir, resolve_run_id
from .batch import BatchExecutor
from .compiler import Pipeline, compile_text
from .rat import rat_start
from .trace import RatDebugTrace

log = logging.getLogger("record_pipelines.build")


@dataclass
class RunResult:
    run_id: str
    mode: str
    input_count: int
    output_count: int
    output_text: str
    stage_counts: List[Dict[str, Any]]
    trace: Optional[RatDebugTrace] = None
    out_dir: Optional[str] = None
    outputs: Dict[str, Optional[str]] = field(default_factory=dict)


class _Counted:
    """Pass-through iterable that counts what it yields."""

    def __init__(self, records: Iterable[Record]):
        self._records = records
        self.n = 0

    def __iter__(self) -> Iterator[Record]:
        for r in self._records:
            self.n += 1
            yield r


def run_records(
    pipeline: Pipeline,
    records: Iterable[Record],
    *,
    mode: str = "batch",
    chunk_size: int = 1,
) -> Tuple[List[Record], List[Dict[str, Any]], Optional[RatDebugTrace]]:
    """Run records through the pipeline; returns (output, stage_counts, trace)."""
    if mode == "rat":
        trace = rat_start(pipeline, records).run_all()
        return trace.final_output(), trace.stage_counts(), trace
    if mode != "batch":
        raise ValueError(f"Unknown execution mode: {mode}")
    executor = BatchExecutor(pipeline, records, chunk_size=chunk_size)
    output = executor.collect()
    return output, executor.stage_counts, None


def execute_pipeline(input_text: str, pipeline_text: str, mode: str = "batch") -> Tuple[str, int, int]:
    """Run DSL text over record text; returns (output_text, input_count, output_count)."""
    pipeline = compile_text(pipeline_text)
    records = parse_records(input_text)
    output, _, _ = run_records(pipeline, records, mode=mode)
    return format_records(output), len(records), len(output)


def read_pipeline_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def run_files(pipeline_path: str, input_path: str, cfg: Dict[str, Any]) -> RunResult:
    """Compile `pipeline_path`, run it over `input_path` and write run artifacts.

    `cfg` is a resolved config (see config.loader.resolve_config).
    """
    start_time_ms = int(time.time() * 1000)
    cfg.setdefault("paths", {}).update({"pipeline": pipeline_path, "input": input_path})
    run_id = resolve_run_id(cfg)
    out_dir = resolve_out_dir(cfg, run_id)

    execution = cfg.get("execution") or {}
    trace_cfg = cfg.get("trace") or {}
    mode = execution.get("mode", "batch")
    if trace_cfg.get("enabled") and mode != "rat":
        log.info("Trace export requested; switching execution mode to rat")
        mode = "rat"

    pipeline = compile_text(read_pipeline_text(pipeline_path))
    log.info(f"Compiled pipeline {pipeline_path}: stages={len(pipeline)} fingerprint={pipeline.fingerprint[:12]}")

    source = RecordFileSource(input_path)
    src_metadata = source.metadata()
    log.info(f"Source {source.name}: {input_path} - {src_metadata['bytes']:,} bytes")
    if src_metadata["bytes"] == 0:
        log.warning(f"Source {source.name}: File is empty!")

    stream: Iterable[Record] = source.stream()
    if (cfg.get("run") or {}).get("progress"):
        stream = tqdm(stream, total=source.count(), unit="rec", desc=f"{mode} {source.name}", leave=False)
    counted = _Counted(stream)

    output, stage_counts, trace = run_records(
        pipeline, counted, mode=mode, chunk_size=int(execution.get("chunk_size", 1)),
    )
    result = RunResult(
        run_id=run_id,
        mode=mode,
        input_count=counted.n,
        output_count=len(output),
        output_text=format_records(output),
        stage_counts=stage_counts,
        trace=trace,
        out_dir=out_dir,
    )
    for c in stage_counts:
        log.debug(f"stage={c['stage_index']} in={c['input_records']} out={c['output_records']} "
                  f"flushed={c['flushed_records']} {c['stage']}")
    log.info(f"Run {run_id} complete: mode={mode} input={result.input_count} output={result.output_count}")

    if out_dir:
        _write_artifacts(result, pipeline, cfg, start_time_ms)
    return result


def _write_artifacts(result: RunResult, pipeline: Pipeline, cfg: Dict[str, Any], start_time_ms: int) -> None:
    out_dir = result.out_dir
    os.makedirs(out_dir, exist_ok=True)
    outputs: Dict[str, Optional[str]] = {}

    trace_cfg = cfg.get("trace") or {}
    if trace_cfg.get("enabled") and result.trace is not None:
        writer = get_trace_writer(trace_cfg.get("format", "jsonl"))
        outputs["trace"] = writer.write(result.trace, out_dir=out_dir, run_id=result.run_id)
        log.info(f"Trace ({writer.name}): {outputs['trace']}")

    if (cfg.get("analytics") or {}).get("enabled"):
        sink = AnalyticsSink(out_dir=out_dir, run_id=result.run_id)
        sink.emit_all(events_from_counts(result.run_id, result.mode, result.stage_counts))
        sink.flush_aggregates()
        outputs["analytics_events"] = sink.events_dir
        outputs["analytics_aggregates"] = sink.aggregates_path

    manifest_path = os.path.join(out_dir, "manifests", f"{result.run_id}.json")
    outputs["manifest"] = manifest_path
    manifest = {
        "run_id": result.run_id,
        "mode": result.mode,
        "start_time_ms": start_time_ms,
        "end_time_ms": int(time.time() * 1000),
        "pipeline_path": (cfg.get("paths") or {}).get("pipeline"),
        "input_path": (cfg.get("paths") or {}).get("input"),
        "config_path": (cfg.get("paths") or {}).get("config"),
        "pipeline_fingerprint": pipeline.fingerprint,
        "stages": list(pipeline.stage_names),
        "input_records": result.input_count,
        "output_records": result.output_count,
        "total_steps": result.trace.total_steps if result.trace else None,
        "flush_steps": len(result.trace.flush_traces) if result.trace else None,
        "stage_counts": result.stage_counts,
        "outputs": outputs,
    }
    write_manifest(manifest_path, manifest)

    from ..tools.summary_report import generate_summary_report
    outputs["report"] = generate_summary_report(out_dir, result.run_id, manifest, config=cfg)
    result.outputs = outputs
    log.info(f"Build complete. manifest={manifest_path}")
