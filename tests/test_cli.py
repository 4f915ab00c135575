import json
import os

import pyarrow.parquet as pq
import pytest

from record_pipelines.cli import main, main_rat

pytestmark = pytest.mark.cli


@pytest.fixture(autouse=True)
def _in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


class TestStreams:
    def test_stdout_and_summary(self, write_files, capsys):
        pipe, data = write_files()
        assert main([pipe, data]) == 0
        out, err = capsys.readouterr()
        assert out == "SMITH   00050000\n"
        assert err == "Processed 2 -> 1 records\n"

    def test_rat_entrypoint_matches(self, write_files, capsys):
        pipe, data = write_files()
        assert main_rat([pipe, data]) == 0
        out, err = capsys.readouterr()
        assert out == "SMITH   00050000\n"
        assert err == "Processed 2 -> 1 records\n"

    def test_mode_flag(self, write_files, capsys):
        pipe, data = write_files()
        assert main([pipe, data, "--mode", "rat"]) == 0
        assert capsys.readouterr().out == "SMITH   00050000\n"

    def test_output_file(self, write_files, tmp_path, capsys):
        pipe, data = write_files()
        target = tmp_path / "nested" / "dir" / "result.out"
        assert main([pipe, data, "-o", str(target)]) == 0
        assert target.read_text(encoding="utf-8") == "SMITH   00050000"
        out, err = capsys.readouterr()
        assert out == ""
        assert err == f"Processed 2 -> 1 records, output: {target}\n"

    def test_empty_output_writes_nothing(self, write_files, capsys):
        pipe, data = write_files('FILTER 18,10 = "NOBODY"')
        assert main([pipe, data]) == 0
        out, err = capsys.readouterr()
        assert out == ""
        assert err == "Processed 2 -> 0 records\n"


class TestErrors:
    def test_parse_error(self, write_files, tmp_path, capsys):
        pipe, data = write_files("TAKE 1\n| BOGUS 3")
        target = tmp_path / "never.out"
        assert main([pipe, data, "-o", str(target)]) == 1
        out, err = capsys.readouterr()
        assert out == ""
        assert err == "Pipeline error: Line 2: Unknown command: BOGUS\n"
        assert not target.exists()

    def test_missing_pipeline_file(self, write_files, tmp_path, capsys):
        _, data = write_files()
        missing = str(tmp_path / "nope.pipe")
        assert main([missing, data]) == 1
        assert capsys.readouterr().err.startswith(f"Error reading pipeline file '{missing}'")

    def test_missing_input_file(self, write_files, tmp_path, capsys):
        pipe, _ = write_files()
        missing = str(tmp_path / "nope.data")
        assert main_rat([pipe, missing]) == 1
        assert capsys.readouterr().err.startswith(f"Error reading input file '{missing}'")

    def test_unwritable_log_dir(self, write_files, tmp_path, capsys):
        pipe, data = write_files()
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        assert main([pipe, data, "--out-dir", str(blocker / "run"), "--run-id", "b1"]) == 1
        out, err = capsys.readouterr()
        assert out == ""
        assert err.startswith("Error creating log directory")
        assert "Traceback" not in err

    def test_unwritable_out_dir(self, write_files, tmp_path, capsys):
        pipe, data = write_files()
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        cfg = tmp_path / "run.yaml"
        cfg.write_text(f"logging:\n  log_dir: {tmp_path / 'logs'}\n", encoding="utf-8")
        target = tmp_path / "never.out"
        rc = main([pipe, data, "--config", str(cfg), "--out-dir", str(blocker / "run"),
                   "--run-id", "b2", "-o", str(target)])
        assert rc == 1
        assert capsys.readouterr().err.startswith("Run error: ")
        assert not target.exists()

    def test_usage_error_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1
        assert "usage: pipe-run" in capsys.readouterr().err


class TestArtifacts:
    def test_trace_analytics_manifest_report(self, write_files, tmp_path, capsys):
        pipe, data = write_files("SORT 28,8 | COUNT", name="salaries")
        out_dir = tmp_path / "runs" / "{run_id}"
        rc = main([pipe, data, "--out-dir", str(out_dir), "--run-id", "r1", "--trace", "jsonl", "--analytics"])
        assert rc == 0
        assert capsys.readouterr().out == "2\n"

        run_dir = tmp_path / "runs" / "r1"
        manifest = json.loads((run_dir / "manifests" / "r1.json").read_text(encoding="utf-8"))
        assert manifest["mode"] == "rat"
        assert manifest["input_records"] == 2
        assert manifest["output_records"] == 1
        assert manifest["total_steps"] == 4
        assert manifest["flush_steps"] == 2
        assert manifest["stages"] == ["SORT 28,8", "COUNT"]

        lines = (run_dir / "traces" / "r1.jsonl").read_text(encoding="utf-8").splitlines()
        rows = [json.loads(x) for x in lines]
        assert rows[0]["kind"] == "header"
        assert [row["kind"] for row in rows[1:]] == ["record", "record", "flush", "flush"]
        assert rows[-1]["pipe_points"] == [["2"]]

        aggs = pq.read_table(run_dir / "analytics" / "aggregates" / "run_aggregates.parquet").to_pylist()
        assert [(a["stage_index"], a["input_records"], a["output_records"]) for a in aggs] == [(0, 2, 2), (1, 2, 1)]
        assert (run_dir / "reports" / "r1_summary.txt").exists()
        assert (run_dir / "logs" / "r1.log").exists()

    def test_parquet_trace(self, write_files, tmp_path):
        pipe, data = write_files()
        assert main([pipe, data, "--out-dir", str(tmp_path / "out"), "--run-id", "p1", "--trace", "parquet"]) == 0
        rows = pq.read_table(tmp_path / "out" / "traces" / "p1.parquet").to_pylist()
        finals = [row["text"] for row in rows if row["pipe_point"] == 2]
        assert finals == ["SMITH   00050000"]

    def test_trace_without_out_dir_uses_runs(self, write_files, tmp_path):
        pipe, data = write_files()
        assert main([pipe, data, "--run-id", "auto1", "--trace", "jsonl"]) == 0
        assert os.path.exists(tmp_path / "runs" / "auto1" / "traces" / "auto1.jsonl")

    def test_config_file(self, write_files, tmp_path, capsys):
        pipe, data = write_files()
        cfg = tmp_path / "run.yaml"
        cfg.write_text(
            "run:\n  run_id: fromcfg\n  out_dir: cfgruns/{run_id}\nexecution:\n  mode: rat\n",
            encoding="utf-8",
        )
        assert main([pipe, data, "--config", str(cfg)]) == 0
        assert capsys.readouterr().out == "SMITH   00050000\n"
        manifest = json.loads((tmp_path / "cfgruns" / "fromcfg" / "manifests" / "fromcfg.json").read_text())
        assert manifest["mode"] == "rat"
        assert manifest["config_path"] == str(cfg)
