"""record_pipelines

Fixed-width (80-byte) record pipelines with a dual execution engine:
a lazy batch executor and a record-at-a-time (RAT) executor that traces
every pipe point and produces byte-for-byte the same output.

Public API surface:
- record_pipelines.record.Record : the 80-byte record buffer
- record_pipelines.dsl.parse_commands : DSL text -> commands
- record_pipelines.pipeline.compiler.compile_pipeline / compile_text : commands -> Pipeline
- record_pipelines.pipeline.batch.run_batch / BatchExecutor : batch execution
- record_pipelines.pipeline.rat.rat_start / RatExecutor : stepped execution with traces
- record_pipelines.stages.registry.register_stage : add stage kinds
- record_pipelines.cli.main / main_rat : CLI entrypoints
"""
__all__ = ["__version__"]
__version__ = "0.1.0"
