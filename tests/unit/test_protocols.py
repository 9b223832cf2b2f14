"""Tests for coordination protocols: topologies, routing hooks, scratch bookkeeping."""

import pytest

from teamgraph.constants import ID_BIDDING, ID_END, ID_SUPERVISOR
from teamgraph.errors import GraphError, ProtocolError
from teamgraph.graph import GraphSpec, NodeKind
from teamgraph.protocols import (
    A2AProtocol,
    BlackboardProtocol,
    ContractNetProtocol,
    HierarchicalProtocol,
    MarketBasedProtocol,
    NoneProtocol,
    SequentialProtocol,
    SwarmProtocol,
    create_protocol,
)
from teamgraph.protocols.a2a import KEY_TRANSFER_HISTORY, find_handoff
from teamgraph.protocols.base import sniff_json
from teamgraph.protocols.contract_net import analyze_bids, format_bids, is_bidding_signal
from teamgraph.protocols.market import assess_quality
from teamgraph.tasks.bidding import KEY_BIDDING_ROUND, KEY_BIDS
from teamgraph.trace import TeamTrace


@pytest.fixture
def trace_for(make_engine, coder, reviewer):
    """Trace wired to an engine running ``protocol`` over Coder and Reviewer."""

    def _trace_for(protocol):
        engine, _ = make_engine([coder, reviewer], protocol=protocol)
        trace = TeamTrace("dev", "build a parser")
        trace.config = engine.config
        return trace

    return _trace_for


def _agent_output(trace, name, content):
    trace.add_step(name, content, is_agent=True)
    trace.last_agent_name = name


class TestRegistry:
    def test_default_is_hierarchical(self):
        assert isinstance(create_protocol(), HierarchicalProtocol)

    @pytest.mark.parametrize(
        "name, cls",
        [
            ("sequential", SequentialProtocol),
            ("Contract-Net", ContractNetProtocol),
            ("BLACKBOARD", BlackboardProtocol),
            ("swarm", SwarmProtocol),
            ("market_based", MarketBasedProtocol),
            ("a2a", A2AProtocol),
            ("none", NoneProtocol),
        ],
    )
    def test_lookup_by_name(self, name, cls):
        assert type(create_protocol(name)) is cls

    def test_instance_passes_through(self):
        protocol = ContractNetProtocol(max_bidding_rounds=3)
        assert create_protocol(protocol) is protocol

    def test_kwargs_forwarded(self):
        assert create_protocol("contract_net", max_bidding_rounds=5).max_bidding_rounds == 5

    def test_unknown_name(self):
        with pytest.raises(ProtocolError, match="Unknown protocol"):
            create_protocol("anarchy")


class TestTopologies:
    AGENTS = {"Coder": object(), "Reviewer": object()}

    def _build(self, protocol):
        spec = GraphSpec()
        protocol.build_graph(spec, self.AGENTS)
        return spec

    def test_hub(self):
        spec = self._build(HierarchicalProtocol())
        assert spec.node_names == ["start", ID_SUPERVISOR, "Coder", "Reviewer", "end"]
        hub = spec.get(ID_SUPERVISOR)
        assert hub.kind is NodeKind.EXCLUSIVE
        assert [edge.target for edge in hub.links] == ["Coder", "Reviewer", "end"]
        assert hub.links[-1].is_default

    def test_sequential_chain(self):
        spec = self._build(SequentialProtocol())
        assert [edge.target for edge in spec.get("start").links] == ["Coder"]
        assert [edge.target for edge in spec.get("Coder").links] == ["Reviewer"]
        assert [edge.target for edge in spec.get("Reviewer").links] == ["end"]
        assert not spec.has(ID_SUPERVISOR)

    def test_sequential_needs_agents(self):
        with pytest.raises(GraphError):
            SequentialProtocol().build_graph(GraphSpec(), {})

    def test_contract_net_bids_before_first_award(self):
        spec = self._build(ContractNetProtocol())
        assert [edge.target for edge in spec.get("start").links] == [ID_BIDDING]
        assert [edge.target for edge in spec.get(ID_BIDDING).links] == [ID_SUPERVISOR]
        assert [edge.target for edge in spec.get(ID_SUPERVISOR).links] == [ID_BIDDING, "Coder", "Reviewer", "end"]

    @pytest.mark.parametrize("protocol", [SwarmProtocol(), A2AProtocol()])
    def test_peer_protocols_start_at_first_agent(self, protocol):
        spec = self._build(protocol)
        assert [edge.target for edge in spec.get("start").links] == ["Coder"]
        assert spec.has(ID_SUPERVISOR)

    def test_none_declares_nothing(self):
        assert self._build(NoneProtocol()).node_names == []
        assert NoneProtocol().should_run(TeamTrace("dev")) is False

    def test_sequential_has_no_components(self):
        assert SequentialProtocol().components(config=None) == {}


class TestBaseRouting:
    def test_exact_name_after_markdown_stripping(self, trace_for):
        trace = trace_for("hierarchical")
        assert HierarchicalProtocol().resolve_route(trace, "`Coder`") == "Coder"

    def test_defers_on_free_text(self, trace_for):
        trace = trace_for("hierarchical")
        assert HierarchicalProtocol().resolve_route(trace, "Coder should go next") is None

    def test_sniff_json(self):
        assert sniff_json('Report: {"done": "tests"} thanks') == {"done": "tests"}
        assert sniff_json("{not json}") is None
        assert sniff_json("plain text") is None


class TestHierarchical:
    def test_instruction_lists_members_with_usage(self, trace_for):
        protocol = HierarchicalProtocol()
        trace = trace_for(protocol)
        protocol.on_routed(trace, "Coder")
        protocol.on_routed(trace, "Coder")
        instruction = protocol.prepare_instruction(trace)
        assert "lead supervisor with full authority" in instruction
        assert "- **Coder** (assigned 2x): Writes Python code" in instruction
        assert "- **Reviewer** (assigned 0x): Reviews code for defects" in instruction

    def test_dashboard_from_json_reports(self, trace_for):
        protocol = HierarchicalProtocol()
        trace = trace_for(protocol)
        protocol.on_agent_end(trace, "Coder", '{"done": "tokenizer", "status": "ok"}')
        protocol.on_agent_end(trace, "Coder", '{"Done": "parser"}')
        protocol.on_agent_end(trace, "Coder", "no json here")
        context = protocol.prepare_context(trace)
        assert "### Progress Dashboard" in context
        assert trace.get_scratch("hierarchy_state") == {"completed": ["tokenizer", "parser"], "status": "ok"}

    def test_finish_clears_scratch(self, trace_for):
        protocol = HierarchicalProtocol()
        trace = trace_for(protocol)
        protocol.on_routed(trace, "Coder")
        protocol.on_agent_end(trace, "Coder", '{"done": "x"}')
        protocol.on_team_finished(trace)
        assert trace.scratch == {}


class TestContractNet:
    @pytest.mark.parametrize(
        "decision",
        ["BIDDING", "call_for_bids", "Please CALL FOR PROPOSALS again", "request a new bid", "solicit offers"],
    )
    def test_bidding_signals(self, decision):
        assert is_bidding_signal(decision)

    @pytest.mark.parametrize("decision", ["", None, "Coder", "Reviewer, check the bid results"])
    def test_not_bidding_signals(self, decision):
        assert not is_bidding_signal(decision)

    def test_format_bids_marks_failures(self):
        report = format_bids(
            [
                {"agent": "Coder", "description": "Writes code", "proposal": "I can do it", "failed": False},
                {"agent": "Reviewer", "description": "", "proposal": "RuntimeError: down", "failed": True},
            ]
        )
        assert report.startswith("## Candidate Bids for Task Selection")
        assert "Total 2 bids received:" in report
        assert "### Agent: Coder\n- Role Description: Writes code\n- Technical Proposal: I can do it" in report
        assert "### Agent: Reviewer (FAILED)\n- Error: RuntimeError: down" in report

    def test_analyze_bids(self):
        ok = {"agent": "A", "proposal": "Expertise match: parsing", "failed": False}
        other = {"agent": "B", "proposal": "generic", "failed": False}
        failed = {"agent": "C", "proposal": "err", "failed": True}
        assert analyze_bids([failed]).startswith("Note: No bids received")
        assert analyze_bids([other, failed]).startswith("Info: Only one bid")
        assert analyze_bids([ok, other]).startswith("Hint: Expertise matches")
        assert analyze_bids([other, dict(other, agent="D")]).startswith("Info: Multiple bids")

    def test_rebid_until_round_limit(self, trace_for):
        protocol = ContractNetProtocol(max_bidding_rounds=2)
        trace = trace_for(protocol)
        trace.set_scratch(KEY_BIDDING_ROUND, 1)
        assert protocol.resolve_route(trace, "BIDDING") == ID_BIDDING
        trace.set_scratch(KEY_BIDDING_ROUND, 2)
        assert protocol.resolve_route(trace, "BIDDING") is None

    def test_finish_marker_defers_to_parser(self, trace_for):
        protocol = ContractNetProtocol()
        trace = trace_for(protocol)
        assert protocol.resolve_route(trace, "[DEV_FINISH] no more bidding needed") is None

    def test_award_to_failed_bidder_is_refused(self, trace_for):
        protocol = ContractNetProtocol()
        trace = trace_for(protocol)
        trace.set_scratch(
            KEY_BIDS,
            [
                {"agent": "Coder", "description": "", "proposal": "ok", "failed": False},
                {"agent": "Reviewer", "description": "", "proposal": "boom", "failed": True},
            ],
        )
        assert protocol.accepts_route(trace, "Coder", "Coder")
        assert not protocol.accepts_route(trace, "Reviewer", "Reviewer")

    def test_context_reports_round_status(self, trace_for):
        protocol = ContractNetProtocol(max_bidding_rounds=1)
        trace = trace_for(protocol)
        trace.set_scratch(KEY_BIDS, [{"agent": "Coder", "description": "", "proposal": "ok", "failed": False}])
        trace.set_scratch(KEY_BIDDING_ROUND, 1)
        context = protocol.prepare_context(trace)
        assert "### Bid Analysis" in context
        assert "Status: This is bidding round 1 (maximum rounds reached)." in context

    def test_on_routed_records_contractor(self, trace_for):
        protocol = ContractNetProtocol()
        trace = trace_for(protocol)
        protocol.on_routed(trace, ID_BIDDING)
        protocol.on_routed(trace, "Coder")
        assert trace.get_scratch("last_contractor") == "Coder"


class TestBlackboard:
    def test_full_history_window(self, trace_for):
        assert BlackboardProtocol().history_window(trace_for("blackboard")) == 0

    def test_board_merges_json_outputs(self, trace_for):
        protocol = BlackboardProtocol()
        trace = trace_for(protocol)
        protocol.on_agent_end(trace, "Coder", '{"parser": "draft", "tests": 0}')
        protocol.on_agent_end(trace, "Reviewer", '{"tests": 12}')
        assert trace.get_scratch("blackboard") == {"parser": "draft", "tests": 12}
        assert "### Blackboard Data" in protocol.prepare_context(trace)

    def test_summary_flags_consecutive_expert(self, trace_for):
        protocol = BlackboardProtocol()
        trace = trace_for(protocol)
        _agent_output(trace, "Coder", "first draft")
        _agent_output(trace, "Coder", "second draft " + "x" * 200)
        summary = protocol.summarize(trace)
        assert summary.startswith("Current blackboard has 2 entries:")
        assert "Same expert executed consecutively" in summary
        assert "..." in summary


class TestSwarm:
    def test_pheromones_and_task_pool(self, trace_for):
        protocol = SwarmProtocol()
        trace = trace_for(protocol)
        protocol.on_routed(trace, "Coder")
        protocol.on_agent_end(trace, "Coder", '{"sub_tasks": ["Reviewer", "write docs"]}')
        protocol.on_routed(trace, "Reviewer")

        state = trace.get_scratch("swarm_state")
        assert state["pheromones"] == {"Coder": 1, "Reviewer": 1}
        assert state["task_pool"] == ["write docs"]
        assert "### Swarm Dashboard" in protocol.prepare_context(trace)

    def test_finish_clears_state(self, trace_for):
        protocol = SwarmProtocol()
        trace = trace_for(protocol)
        protocol.on_routed(trace, "Coder")
        protocol.on_team_finished(trace)
        assert trace.get_scratch("swarm_state") is None


class TestMarket:
    @pytest.mark.parametrize(
        "content, expected",
        [("", 0.1), ("short", 0.4), ("x" * 150, 0.7), ("```py\n" + "x" * 600 + "\n```", 0.9)],
    )
    def test_assess_quality(self, content, expected):
        assert assess_quality(content) == expected

    def test_profiles_update_after_each_deal(self, trace_for):
        protocol = MarketBasedProtocol()
        trace = trace_for(protocol)
        _agent_output(trace, "Coder", "x" * 150)
        protocol.on_agent_end(trace, "Coder", "x" * 150)
        profile = trace.get_scratch("market_state")["Coder"]
        assert profile["deals"] == 1
        assert profile["quality"] == pytest.approx(0.8 * 0.7 + 0.7 * 0.3)
        context = protocol.prepare_context(trace)
        assert "### Marketplace" in context
        assert '"deals": 1' in context


class TestA2A:
    NAMES = ["Coder", "Reviewer", "CodeReviewer"]

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Done. Transfer to Reviewer: check edge cases", ("Reviewer", "check edge cases")),
            ("handing off to **Coder** - fix the lexer", ("Coder", "fix the lexer")),
            ("handoff: Reviewer", ("Reviewer", "")),
            ("next: Coder, then we are done", ("Coder", "then we are done")),
            ("@CodeReviewer please look", ("CodeReviewer", "please look")),
        ],
    )
    def test_find_handoff(self, text, expected):
        assert find_handoff(text, self.NAMES) == expected

    def test_earliest_phrase_wins(self):
        assert find_handoff("@Reviewer first, then transfer to Coder", self.NAMES)[0] == "Reviewer"

    def test_no_handoff(self):
        assert find_handoff("mail me at dev@Coder.io", ["Coder"]) is None
        assert find_handoff("", self.NAMES) is None

    def test_agent_handoff_beats_supervisor_text(self, trace_for):
        protocol = A2AProtocol()
        trace = trace_for(protocol)
        _agent_output(trace, "Coder", "Implemented. transfer to Reviewer: run the tests")
        assert protocol.resolve_route(trace, "Coder") == "Reviewer"
        assert protocol.prepare_context(trace).endswith("run the tests")
        assert protocol.prepare_context(trace) == ""

    def test_finish_marker_defers_to_parser(self, trace_for):
        protocol = A2AProtocol()
        trace = trace_for(protocol)
        _agent_output(trace, "Coder", "Implemented. transfer to Reviewer: run the tests")
        assert protocol.resolve_route(trace, "[dev_finish] all done @Reviewer") is None
        assert trace.get_scratch(KEY_TRANSFER_HISTORY) is None
        assert protocol.prepare_context(trace) == ""

    def test_supervisor_handoff_when_agent_is_silent(self, trace_for):
        protocol = A2AProtocol()
        trace = trace_for(protocol)
        _agent_output(trace, "Coder", "Implemented the lexer.")
        assert protocol.resolve_route(trace, "@Reviewer") == "Reviewer"

    def test_ping_pong_terminates(self, trace_for):
        protocol = A2AProtocol()
        trace = trace_for(protocol)
        trace.set_scratch(KEY_TRANSFER_HISTORY, [["Reviewer", "Coder"]])
        _agent_output(trace, "Coder", "@Reviewer")
        assert protocol.resolve_route(trace, "Reviewer") == ID_END
        assert trace.steps[-1].content == "Loop detected (Coder <-> Reviewer), terminating."
