"""Tests for the interceptor chain, loop breaker and audit logging."""

from unittest.mock import Mock

import pytest

from teamgraph.errors import InterceptorError
from teamgraph.intercept import AuditInterceptor, InterceptorChain, LoopingTeamInterceptor, TeamInterceptor
from teamgraph.intercept.looping import edit_distance, similarity
from teamgraph.trace import TeamTrace


class Allow(TeamInterceptor):
    pass


class Deny(TeamInterceptor):
    def should_continue(self, trace):
        return False


class Broken(TeamInterceptor):
    def on_agent_start(self, trace, agent):
        raise RuntimeError("hook exploded")


class TestInterceptorChain:
    def test_gate_returns_first_veto(self):
        first, second = Deny(), Deny()
        chain = InterceptorChain([Allow(), first, second])
        assert chain.gate(TeamTrace("dev")) is first

    def test_gate_passes(self):
        assert InterceptorChain([Allow()]).gate(TeamTrace("dev")) is None
        assert InterceptorChain().gate(TeamTrace("dev")) is None

    def test_hooks_run_in_registration_order(self):
        calls = []
        a, b = Mock(spec=TeamInterceptor), Mock(spec=TeamInterceptor)
        a.on_decision.side_effect = lambda *args: calls.append("a")
        b.on_decision.side_effect = lambda *args: calls.append("b")
        InterceptorChain([a, b]).on_decision(TeamTrace("dev"), "Coder", "Coder")
        assert calls == ["a", "b"]

    def test_hook_failure_is_wrapped(self):
        chain = InterceptorChain([Broken()])
        with pytest.raises(InterceptorError) as exc_info:
            chain.on_agent_start(TeamTrace("dev"), Mock(name="agent"))
        error = exc_info.value
        assert error.hook == "on_agent_start"
        assert isinstance(error.interceptor, Broken)
        assert isinstance(error.cause, RuntimeError)
        assert "Broken.on_agent_start failed: hook exploded" in str(error)


class TestSimilarity:
    def test_edit_distance(self):
        assert edit_distance("kitten", "sitting") == 3
        assert edit_distance("", "abc") == 3
        assert edit_distance("same", "same") == 0

    def test_similarity_ignores_whitespace_and_case(self):
        assert similarity("Hello World", "hello   world") == 1.0
        assert similarity("abc", "abd") == pytest.approx(2 / 3)
        assert similarity("", "") == 1.0


class TestLoopingInterceptor:
    TEXT = "Here is the same long answer again"

    def _trace(self, outputs):
        trace = TeamTrace("dev", "task")
        for source, content in outputs:
            trace.add_step("supervisor", source)
            trace.add_step(source, content, is_agent=True)
        return trace

    def test_self_loop(self):
        trace = self._trace([("Writer", self.TEXT), ("Writer", self.TEXT)])
        interceptor = LoopingTeamInterceptor()
        assert interceptor.is_looping(trace)
        assert interceptor.should_continue(trace) is False

    def test_progress_is_not_a_loop(self):
        trace = self._trace([("Writer", "First draft of the intro"), ("Writer", "Completely different ending")])
        assert LoopingTeamInterceptor().should_continue(trace) is True

    def test_repeat_allowance(self):
        trace = self._trace([("Writer", self.TEXT), ("Writer", self.TEXT)])
        assert not LoopingTeamInterceptor(max_repeat_allowed=1)._self_loop(trace.current_turn_steps())

    def test_sequence_loop(self):
        trace = self._trace(
            [("A", "alpha output text"), ("B", "bravo output text"), ("A", "alpha output text"), ("B", "bravo output text")]
        )
        assert LoopingTeamInterceptor()._sequence_loop(trace.current_turn_steps())

    def test_alternating_handoff_stops_team(self):
        trace = self._trace(
            [("A", "alpha output text"), ("B", "bravo output text"), ("A", "alpha output text"), ("B", "bravo output text")]
        )
        # one repeat per agent is tolerated, so only the A-B-A-B pattern can trip
        interceptor = LoopingTeamInterceptor(max_repeat_allowed=1)
        assert not interceptor._self_loop(trace.current_turn_steps())
        assert interceptor.should_continue(trace) is False

    def test_alternating_with_new_content_continues(self):
        trace = self._trace(
            [("A", "alpha output text"), ("B", "bravo output text"), ("A", "alpha revised plan"), ("B", "bravo output text")]
        )
        assert LoopingTeamInterceptor(max_repeat_allowed=1).should_continue(trace) is True

    def test_short_outputs_are_ignored(self):
        trace = self._trace([("Writer", "ok"), ("Writer", "ok")])
        assert not LoopingTeamInterceptor().is_looping(trace)

    def test_too_few_steps(self):
        trace = self._trace([("Writer", self.TEXT)])
        assert not LoopingTeamInterceptor().is_looping(trace)


class TestAuditInterceptor:
    def test_logs_every_hook(self):
        logger = Mock()
        audit = AuditInterceptor(logger=logger, limit=20)
        trace = TeamTrace("dev", "build a parser for arithmetic expressions")
        agent = Mock()
        agent.name = "Coder"

        audit.on_team_start(trace)
        audit.on_model_start(trace, "sys", "user")
        audit.on_model_end(trace, "Coder")
        audit.on_decision(trace, "Coder", "Coder")
        audit.on_agent_start(trace, agent)
        audit.on_agent_end(trace, agent, "def parse(): ...")
        audit.on_team_end(trace)

        messages = [args[0] for args, _ in logger.info.call_args_list]
        assert messages[0].startswith("[audit] team=dev start task=build a parser for a...")
        assert "[audit] team=dev model call #1" in messages
        assert "[audit] team=dev decision -> Coder" in messages
        assert "[audit] team=dev agent Coder start" in messages
        assert "Team [dev] finished:" in messages
