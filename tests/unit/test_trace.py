"""Tests for TeamTrace: step log, routing state, scratch, snapshots."""

import threading

import pytest

from teamgraph.constants import ID_END, ID_SYSTEM
from teamgraph.trace import TeamStep, TeamTrace


class TestStepLog:
    def test_empty_history(self):
        assert TeamTrace("dev").formatted_history() == "No progress yet."

    def test_formatted_history_titles(self):
        trace = TeamTrace("dev", "task")
        trace.add_step("supervisor", "Coder")
        trace.add_step("Coder", "def f(): pass", is_agent=True, duration_ms=12)
        history = trace.formatted_history()
        assert "### System Instruction from [supervisor]:\nCoder" in history
        assert "### Expert Output from [Coder]:\ndef f(): pass" in history

    def test_history_window_keeps_latest_steps(self):
        trace = TeamTrace("dev")
        for i in range(6):
            trace.add_step("Coder", f"out {i}", is_agent=True)
        history = trace.formatted_history(window=2)
        assert "out 4" in history and "out 5" in history
        assert "out 3" not in history

    def test_history_without_system_steps(self):
        trace = TeamTrace("dev")
        trace.add_step("supervisor", "Coder")
        trace.add_step("Coder", "code", is_agent=True)
        assert "supervisor" not in trace.formatted_history(include_system=False)

    def test_steps_are_immutable(self):
        step = TeamTrace("dev").add_step("Coder", "x", is_agent=True)
        assert isinstance(step, TeamStep)
        with pytest.raises(AttributeError):
            step.content = "y"

    def test_last_agent_content_ignores_previous_turn(self):
        trace = TeamTrace("dev", "first")
        trace.add_step("Coder", "old answer", is_agent=True)
        trace.reset_for_task("second")
        assert trace.last_agent_content() == ""
        trace.add_step("supervisor", "Reviewer")
        trace.add_step("Reviewer", "new answer", is_agent=True)
        assert trace.last_agent_content() == "new answer"


class TestRouting:
    def test_commit_route_records_history(self):
        trace = TeamTrace("dev")
        trace.commit_route("Coder")
        trace.commit_route(ID_END)
        assert trace.route_history == ["Coder"]
        assert trace.is_terminated

    def test_terminate_adds_diagnostic(self):
        trace = TeamTrace("dev")
        trace.terminate("done here")
        assert trace.route == ID_END
        assert trace.steps[-1].source == ID_SYSTEM
        assert trace.steps[-1].content == "done here"

    def test_fail_records_error(self):
        trace = TeamTrace("dev")
        trace.fail(RuntimeError("boom"))
        assert trace.error == "RuntimeError: boom"
        assert trace.steps[-1].content == "[Error] RuntimeError: boom"

    def test_cancel_from_another_thread(self):
        trace = TeamTrace("dev")
        worker = threading.Thread(target=trace.cancel, args=("user abort",))
        worker.start()
        worker.join()
        assert trace.cancelled
        assert trace.cancel_reason == "user abort"


class TestLifecycle:
    def test_reset_for_task_keeps_history(self):
        trace = TeamTrace("dev", "first")
        trace.add_step("Coder", "v1", is_agent=True)
        trace.commit_route("Coder")
        trace.iteration_count = 3
        trace.final_answer = "v1"
        trace.set_scratch("k", 1)

        trace.reset_for_task("second")

        assert trace.task == "second"
        assert trace.iteration_count == 0
        assert trace.final_answer is None
        assert trace.route is None
        assert trace.route_history == []
        assert trace.scratch == {}
        assert len(trace.steps) == 1
        assert trace.turn_start == 1
        assert trace.current_turn_steps() == []

    def test_resume_keeps_progress(self):
        trace = TeamTrace("dev", "task")
        trace.iteration_count = 2
        trace.add_step("Coder", "v1", is_agent=True)
        trace.fail(RuntimeError("network"))
        trace.cancel()

        trace.resume()

        assert trace.route is None
        assert trace.error is None
        assert not trace.cancelled
        assert trace.iteration_count == 2
        assert trace.task == "task"

    def test_snapshot_round_trip(self):
        trace = TeamTrace("dev", "task", max_iterations=4, session_id="s1")
        trace.add_step("supervisor", "Coder")
        trace.add_step("Coder", "code", is_agent=True, duration_ms=5)
        trace.commit_route("Coder")
        trace.iteration_count = 1
        trace.set_scratch("agent_usage", {"Coder": 1})
        trace.config = object()

        data = trace.to_dict()
        assert "config" not in data

        restored = TeamTrace.from_dict(data)
        assert restored.team_name == "dev"
        assert restored.max_iterations == 4
        assert restored.session_id == "s1"
        assert restored.steps == trace.steps
        assert restored.route_history == ["Coder"]
        assert restored.scratch == {"agent_usage": {"Coder": 1}}
        assert restored.config is None

    def test_scratch_helpers(self):
        trace = TeamTrace("dev")
        assert trace.get_scratch("missing", 7) == 7
        pool = trace.setdefault_scratch("pool", [])
        pool.append("x")
        assert trace.get_scratch("pool") == ["x"]
        assert trace.pop_scratch("pool") == ["x"]
        assert trace.pop_scratch("pool") is None
