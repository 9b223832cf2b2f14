"""Contract net: collect bids from every member, then award the task."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from teamgraph.constants import ID_BIDDING, ID_END, ID_START, ID_SUPERVISOR
from teamgraph.graph.builder import GraphSpec
from teamgraph.protocols.base import TeamProtocol
from teamgraph.tasks.bidding import KEY_BIDDING_ROUND, KEY_BIDS, BiddingTask
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

KEY_LAST_CONTRACTOR = "last_contractor"

BIDDING_KEYWORDS = ("BIDDING", "CALL_FOR_BIDS")
_BIDDING_PATTERNS = [
    re.compile(pattern, re.IGNORECASE) for pattern in (r"CALL.*PROPOSAL", r"REQUEST.*BID", r"SOLICIT.*OFFER")
]


def is_bidding_signal(decision: Optional[str]) -> bool:
    if not decision:
        return False
    upper = decision.upper()
    if any(keyword in upper for keyword in BIDDING_KEYWORDS):
        return True
    return any(pattern.search(decision) for pattern in _BIDDING_PATTERNS)


def format_bids(bids: List[Dict[str, Any]]) -> str:
    """Render collected bids as the Markdown report shown to the awarding decision."""
    lines = ["## Candidate Bids for Task Selection", f"Total {len(bids)} bids received:", ""]
    for bid in bids:
        if bid["failed"]:
            lines.append(f"### Agent: {bid['agent']} (FAILED)")
            lines.append(f"- Error: {bid['proposal']}")
        else:
            lines.append(f"### Agent: {bid['agent']}")
            lines.append(f"- Role Description: {bid['description'] or 'N/A'}")
            lines.append(f"- Technical Proposal: {bid['proposal']}")
        lines.append("")
    return "\n".join(lines).rstrip()


def analyze_bids(bids: List[Dict[str, Any]]) -> str:
    valid = [bid for bid in bids if not bid["failed"]]
    if not valid:
        return "Note: No bids received. Suggestion: Re-bid or adjust task description."
    if len(valid) == 1:
        return (
            "Info: Only one bid received. Suggestion: Evaluate feasibility carefully, "
            "or consider re-bidding for more options."
        )
    if any("expertise match" in bid["proposal"].lower() for bid in valid):
        return "Hint: Expertise matches detected. Suggest prioritizing these experts."
    return "Info: Multiple bids received. Suggestion: Compare feasibility, efficiency, professionalism."


class ContractNetProtocol(TeamProtocol):
    """Two-phase discipline: the bidding activity always precedes the first award.

    Args:
        max_bidding_rounds: Cap on bidding rounds per task (the initial round counts)
        bid_analysis: Append a short analysis of the bids to the award prompt
    """

    name = "CONTRACT_NET"

    def __init__(self, max_bidding_rounds: int = 2, bid_analysis: bool = True) -> None:
        self.max_bidding_rounds = max(1, max_bidding_rounds)
        self.bid_analysis = bid_analysis

    def build_graph(self, spec: GraphSpec, agents: Mapping[str, Any]) -> None:
        spec.add_start(ID_START).link_add(ID_BIDDING)
        spec.add_activity(ID_BIDDING).link_add(ID_SUPERVISOR)
        self.add_supervisor_hub(spec, agents, extra_routes=[ID_BIDDING])
        for name in agents:
            spec.add_activity(name).link_add(ID_SUPERVISOR)
        spec.add_end(ID_END)

    def components(self, config) -> Dict[str, Any]:
        components = super().components(config)
        components[ID_BIDDING] = BiddingTask(config)
        return components

    def prepare_instruction(self, trace: TeamTrace) -> str:
        return (
            f"## Collaboration Protocol: {self.name}\n"
            "1. **Bidding Decision**: Bids have been collected from every member. If the task changed or the best "
            "executor is still unclear, output `BIDDING` to initiate another round.\n"
            "2. **Bid Evaluation**: Review bid summaries, select the best executor based on professionalism, "
            "feasibility, efficiency.\n"
            "3. **Contract Management**: Monitor contractor execution, evaluate result quality, re-bid if necessary.\n"
            f"4. **Bidding Signals**: Available signals: {', '.join(BIDDING_KEYWORDS)}"
        )

    def prepare_context(self, trace: TeamTrace) -> str:
        bids = trace.get_scratch(KEY_BIDS)
        sections = []
        if bids:
            sections.append(format_bids(bids))
            sections.append("Please award the task based on the professionalism, feasibility and efficiency of the proposals above.")
            if self.bid_analysis:
                sections.append(f"### Bid Analysis\n{analyze_bids(bids)}")

        round_no = trace.get_scratch(KEY_BIDDING_ROUND, 0)
        if round_no:
            status = f"Status: This is bidding round {round_no}"
            if round_no >= self.max_bidding_rounds:
                status += " (maximum rounds reached)"
            sections.append(status + ".")
        return "\n\n".join(sections)

    def resolve_route(self, trace: TeamTrace, decision: str) -> Optional[str]:
        if trace.config.finish_marker.lower() in (decision or "").lower():
            return None
        if is_bidding_signal(decision):
            if trace.get_scratch(KEY_BIDDING_ROUND, 0) < self.max_bidding_rounds:
                return ID_BIDDING
            LOGGER.warning("ContractNet: bidding round limit reached, deferring to generic parsing")
            return None
        return super().resolve_route(trace, decision)

    def accepts_route(self, trace: TeamTrace, decision: str, route: str) -> bool:
        for bid in trace.get_scratch(KEY_BIDS) or []:
            if bid["agent"] == route and bid["failed"]:
                LOGGER.warning(f"ContractNet: refusing to award '{route}', its bid failed")
                return False
        return True

    def on_routed(self, trace: TeamTrace, target: str) -> None:
        if target not in (ID_BIDDING, ID_SUPERVISOR, ID_END):
            trace.set_scratch(KEY_LAST_CONTRACTOR, target)
            LOGGER.debug(f"ContractNet: contractor selected: {target}")

    def on_team_finished(self, trace: TeamTrace) -> None:
        for key in (KEY_BIDS, KEY_BIDDING_ROUND, KEY_LAST_CONTRACTOR):
            trace.pop_scratch(key)


__all__ = ["ContractNetProtocol", "analyze_bids", "format_bids", "is_bidding_signal"]
