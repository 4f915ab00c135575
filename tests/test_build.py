import json
import os

import pytest

from record_pipelines.config.loader import resolve_config
from record_pipelines.errors import CompileError, ParseError
from record_pipelines.pipeline.build import execute_pipeline, run_files, run_records
from record_pipelines.sources.text_lines import RecordFileSource, format_records, parse_records

from conftest import EMPLOYEES, SCENARIO_PIPELINE, texts

pytestmark = pytest.mark.engine


class TestExecutePipeline:
    @pytest.mark.parametrize("mode", ["batch", "rat"])
    def test_scenario(self, mode):
        text = "\n".join(EMPLOYEES[:2])
        assert execute_pipeline(text, SCENARIO_PIPELINE, mode=mode) == ("SMITH   00050000", 2, 1)

    def test_blank_lines_are_not_records(self):
        out, n_in, n_out = execute_pipeline("a\n\n\nb\n", "COUNT")
        assert (out, n_in, n_out) == ("2", 2, 1)

    def test_parse_error_propagates(self):
        with pytest.raises(ParseError) as exc:
            execute_pipeline("x", "TAKE\n| SKIP 1")
        assert exc.value.line == 1

    def test_unknown_mode(self, make_pipeline):
        with pytest.raises(ValueError):
            run_records(make_pipeline("TAKE 1"), [], mode="parallel")


class TestRecordText:
    def test_format_trims_trailing_spaces(self):
        records = parse_records("abc   \nxyz")
        assert format_records(records) == "abc\nxyz"
        assert format_records([]) == ""

    def test_only_newline_ends_a_record(self):
        records = parse_records("AB\x0cCD\r\nEF\x0bGH\x85\n")
        assert len(records) == 2
        assert records[0].field(0, 5) == "AB\x0cCD"
        assert records[1].field(0, 6) == "EF\x0bGH?"

    def test_file_source_keeps_one_byte_per_column(self, tmp_path):
        path = tmp_path / "raw.data"
        path.write_bytes(b"AB\xffCD     SALES\r\n\n\xe9\xe9X\n")
        source = RecordFileSource(str(path))
        first, second = source.stream()
        assert first.field(0, 5) == "AB?CD"
        assert first.field_eq(10, 5, "SALES")
        assert second.rstrip() == "??X"
        assert source.count() == 2

    def test_file_source_streams_and_counts(self, write_files):
        _, data = write_files(lines=["one", "", "two"])
        source = RecordFileSource(data)
        assert source.name == "job"
        assert source.count() == 2
        assert texts(source.stream()) == ["one", "two"]


class TestRunFiles:
    def test_without_out_dir_writes_nothing(self, write_files, tmp_path):
        pipe, data = write_files()
        before = set(os.listdir(tmp_path))
        result = run_files(pipe, data, resolve_config(overrides={"run": {"run_id": "x1"}}))
        assert result.output_text == "SMITH   00050000"
        assert (result.input_count, result.output_count) == (2, 1)
        assert result.mode == "batch"
        assert result.trace is None
        assert result.out_dir is None
        assert set(os.listdir(tmp_path)) == before

    def test_trace_forces_rat(self, write_files, tmp_path):
        pipe, data = write_files("SORT 0,8")
        cfg = resolve_config(overrides={
            "run": {"run_id": "t1", "out_dir": str(tmp_path / "out")},
            "trace": {"enabled": True},
        })
        result = run_files(pipe, data, cfg)
        assert result.mode == "rat"
        assert result.trace.total_steps == 3
        assert result.outputs["trace"].endswith(os.path.join("traces", "t1.jsonl"))
        with open(result.outputs["manifest"], encoding="utf-8") as f:
            manifest = json.load(f)
        assert manifest["outputs"]["trace"] == result.outputs["trace"]
        assert manifest["stage_counts"] == result.stage_counts

    def test_summary_report_sections(self, write_files, tmp_path):
        pipe, data = write_files()
        cfg = resolve_config(overrides={"run": {"run_id": "s1", "out_dir": str(tmp_path / "out")}})
        result = run_files(pipe, data, cfg)
        with open(result.outputs["report"], encoding="utf-8") as f:
            report = f.read()
        for section in ("PIPELINE", "STATISTICS", "STAGE COUNTS", "OUTPUT LOCATIONS", "CONFIGURATION"):
            assert section in report
        assert 'FILTER 18,10 = "SALES"' in report

    def test_chunk_size_from_config(self, write_files):
        pipe, data = write_files("UPPER | TAKE 1")
        cfg = resolve_config(overrides={"execution": {"chunk_size": 4}})
        assert run_files(pipe, data, cfg).output_count == 1

    def test_compile_error_before_any_output(self, write_files, tmp_path):
        pipe, data = write_files('CHANGE "" "x"')
        cfg = resolve_config(overrides={"run": {"run_id": "c1", "out_dir": str(tmp_path / "out")}})
        with pytest.raises((ParseError, CompileError)):
            run_files(pipe, data, cfg)
        assert not os.path.exists(tmp_path / "out" / "manifests")
