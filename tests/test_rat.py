import pytest

from record_pipelines.pipeline.batch import BatchExecutor
from record_pipelines.pipeline.rat import RatExecutor, RatState, rat_start
from record_pipelines.pipeline.trace import FlushTrace, RecordTrace
from record_pipelines.record import Record

from conftest import texts

pytestmark = pytest.mark.engine


def letters(*xs):
    return [Record.from_str(x) for x in xs]


class TestStateMachine:
    def test_starts_not_started(self, scenario_pipeline, scenario_records):
        ex = rat_start(scenario_pipeline, scenario_records)
        assert isinstance(ex, RatExecutor)
        assert ex.state is RatState.NOT_STARTED
        assert ex.current_step == 0
        assert ex.trace().total_steps == 0

    def test_consumes_then_done(self, scenario_pipeline, scenario_records):
        ex = rat_start(scenario_pipeline, scenario_records)
        first = ex.step()
        assert isinstance(first, RecordTrace)
        assert ex.state is RatState.CONSUMING_INPUT
        second = ex.step()
        assert isinstance(second, RecordTrace)
        # no stage buffers, so the last record moves straight to DONE
        assert ex.state is RatState.DONE
        assert ex.is_done
        assert ex.step() is None
        assert ex.step() is None
        assert ex.current_step == 2

    def test_empty_input_without_buffering(self, make_pipeline):
        ex = rat_start(make_pipeline("TAKE 1"), [])
        assert ex.step() is None
        assert ex.state is RatState.DONE
        assert ex.current_step == 0

    def test_empty_input_with_count_flushes(self, make_pipeline):
        ex = rat_start(make_pipeline("COUNT"), [])
        entry = ex.step()
        assert isinstance(entry, FlushTrace)
        assert entry.stage_index == 0
        assert [texts(p) for p in entry.pipe_points] == [["0"]]
        assert ex.state is RatState.DONE

    def test_enters_flushing_eagerly(self, make_pipeline):
        ex = rat_start(make_pipeline("SORT 0,1 | TAKE 2"), letters("c", "a", "b"))
        for _ in range(3):
            assert isinstance(ex.step(), RecordTrace)
        assert ex.state is RatState.FLUSHING
        flush = ex.step()
        assert isinstance(flush, FlushTrace)
        assert flush.stage_index == 0
        assert len(flush.pipe_points) == 2
        assert texts(flush.pipe_points[0]) == ["a", "b", "c"]
        assert texts(flush.pipe_points[1]) == ["a", "b"]
        assert ex.state is RatState.DONE
        assert ex.current_step == 4

    def test_flushes_each_buffering_stage_in_order(self, make_pipeline, employees):
        ex = rat_start(make_pipeline("SORT 28,8 | COUNT"), employees)
        trace = ex.run_all()
        assert [f.stage_index for f in trace.flush_traces] == [0, 1]
        sort_flush, count_flush = trace.flush_traces
        assert len(sort_flush.pipe_points[0]) == 5
        assert sort_flush.pipe_points[1] == ()
        assert texts(count_flush.pipe_points[0]) == ["5"]
        assert texts(trace.final_output()) == ["5"]

    def test_iterating_yields_every_step(self, make_pipeline, employees):
        ex = rat_start(make_pipeline("UPPER | COUNT"), employees)
        steps = list(ex)
        assert len(steps) == 6
        assert ex.is_done
        assert list(ex) == []


class TestPipePoints:
    def test_scenario_trace(self, scenario_pipeline, scenario_records):
        trace = rat_start(scenario_pipeline, scenario_records).run_all()
        assert trace.stage_names == list(scenario_pipeline.stage_names)
        smith, jones = trace.record_traces
        assert smith.record_index == 0 and jones.record_index == 1
        assert len(smith.final) == 1
        assert smith.final[0].field(0, 8).strip() == "SMITH"
        assert smith.final[0].field(8, 8) == "00050000"
        assert jones.final == ()
        assert jones.dropped_at() == 0
        assert smith.dropped_at() is None

    def test_first_pipe_point_is_raw_input(self, scenario_pipeline, scenario_records):
        trace = rat_start(scenario_pipeline, scenario_records).run_all()
        for t, raw in zip(trace.record_traces, scenario_records):
            assert t.pipe_points[0] == (raw,)

    @pytest.mark.parametrize("text", [
        "TAKE 1",
        'FILTER 18,10 = "SALES" | SELECT 0,8,0; 28,8,8',
        'SKIP 1 | NLOCATE "BOB" | UPPER | TAKE 2',
        "DUPLICATE 2 | SKIP 3 | REVERSE",
        'LITERAL "H" | SORT | APPEND "T"',
    ])
    def test_n_plus_one_points_and_monotone(self, make_pipeline, employees, text):
        pipeline = make_pipeline(text)
        trace = rat_start(pipeline, employees).run_all()
        for t in trace.record_traces:
            assert len(t.pipe_points) == len(pipeline) + 1
            emptied = False
            for point in t.pipe_points:
                if emptied:
                    assert point == ()
                emptied = emptied or point == ()
        for f in trace.flush_traces:
            assert len(f.pipe_points) == len(pipeline) - f.stage_index

    def test_flush_trace_absolute_access(self, make_pipeline):
        trace = rat_start(make_pipeline('UPPER | SORT | LOWER'), letters("B", "A")).run_all()
        (flush,) = trace.flush_traces
        assert flush.stage_index == 1
        assert texts(flush.at(2)) == ["A", "B"]
        assert texts(flush.at(3)) == ["a", "b"]


class TestAccounting:
    def test_non_buffering_steps_equal_input_size(self, make_pipeline, employees):
        trace = rat_start(make_pipeline('LOCATE "E" | SELECT 0,8,0 | TAKE 3'), employees).run_all()
        assert trace.total_steps == len(employees)
        assert trace.flush_traces == []

    def test_current_step_tracks_trace_index(self, make_pipeline, employees):
        ex = rat_start(make_pipeline("COUNT"), employees)
        while True:
            entry = ex.step()
            if entry is None:
                break
            assert ex.trace().entry(ex.current_step - 1) == entry

    def test_step_labels(self, make_pipeline):
        trace = rat_start(make_pipeline("SORT | COUNT"), letters("x", "y")).run_all()
        assert [trace.step_label(i) for i in range(trace.total_steps)] == [
            "Record 1 of 2", "Record 2 of 2", "Flush 1 of 2", "Flush 2 of 2",
        ]

    def test_trace_is_a_copy(self, scenario_pipeline, scenario_records):
        ex = rat_start(scenario_pipeline, scenario_records)
        ex.step()
        snapshot = ex.trace()
        snapshot.record_traces.clear()
        assert ex.trace().total_steps == 1

    def test_stage_snapshots_show_counters(self, make_pipeline, employees):
        ex = rat_start(make_pipeline("SKIP 1 | TAKE 2"), employees)
        ex.step()
        ex.step()
        skip, take = ex.stage_snapshots()
        assert skip["seen"] == 2
        assert take["seen"] == 1

    @pytest.mark.parametrize("text", [
        'FILTER 18,10 = "SALES" | SELECT 0,8,0; 28,8,8',
        'LITERAL "H" | COUNT',
        "COUNT | LITERAL \"H\"",
        "SORT 0,8 DESC | DUPLICATE 1 | TAKE 3 | APPEND \"END\"",
    ])
    def test_stage_counts_match_batch(self, make_pipeline, employees, text):
        pipeline = make_pipeline(text)
        batch = BatchExecutor(pipeline, employees)
        batch.collect()
        trace = rat_start(pipeline, employees).run_all()
        assert trace.stage_counts() == batch.stage_counts
