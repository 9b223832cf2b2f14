"""Agent-to-agent hand-off: members name their own successor."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Mapping, Optional, Tuple

from teamgraph.constants import ID_END, ID_START, ID_SUPERVISOR
from teamgraph.errors import GraphError
from teamgraph.graph.builder import GraphSpec
from teamgraph.protocols.base import TeamProtocol
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

KEY_LAST_INSTRUCTION = "a2a_last_instruction"
KEY_TRANSFER_HISTORY = "a2a_transfer_history"

TRANSFER_HISTORY_LIMIT = 20

# Phrases introducing the successor; the agent name follows immediately
_HANDOFF_LEADS = (
    r"transfer(?:ring)?\s+to",
    r"hand(?:ing)?[\s-]*off\s+to",
    r"handoff\s*:",
    r"next\s*:",
)
_NAME_QUOTES = "[\\s*_`\"'\\[]*"


def _handoff_patterns(name: str) -> List[re.Pattern]:
    escaped = re.escape(name)
    patterns = [
        re.compile(rf"(?:{lead}){_NAME_QUOTES}{escaped}(?![\w-])", re.IGNORECASE) for lead in _HANDOFF_LEADS
    ]
    patterns.append(re.compile(rf"(?<![\w@])@{escaped}(?![\w-])", re.IGNORECASE))
    return patterns


def find_handoff(text: str, names: List[str]) -> Optional[Tuple[str, str]]:
    """Return ``(agent_name, instruction)`` for the first hand-off phrase in ``text``.

    Names are tried longest first so ``@AB`` never resolves to ``A``.
    """
    if not text:
        return None
    best = None
    for name in sorted(names, key=len, reverse=True):
        for pattern in _handoff_patterns(name):
            match = pattern.search(text)
            if match and (best is None or match.start() < best[1].start()):
                best = (name, match)
    if best is None:
        return None
    name, match = best
    instruction = text[match.end():].strip().lstrip(":-,.;*_`\"'] ").strip()
    return name, instruction


class A2AProtocol(TeamProtocol):
    name = "A2A"

    def build_graph(self, spec: GraphSpec, agents: Mapping[str, Any]) -> None:
        names = list(agents)
        if not names:
            raise GraphError("A2A protocol needs at least one agent")
        spec.add_start(ID_START).link_add(names[0])
        for name in names:
            spec.add_activity(name).link_add(ID_SUPERVISOR)
        self.add_supervisor_hub(spec, agents)
        spec.add_end(ID_END)

    def prepare_instruction(self, trace: TeamTrace) -> str:
        return (
            f"{super().prepare_instruction(trace)}\n"
            "- Members hand work to each other explicitly (e.g. `transfer to <Agent>` or `@<Agent>`).\n"
            "- Honour an explicit hand-off from the last member unless it is clearly wrong."
        )

    def prepare_context(self, trace: TeamTrace) -> str:
        instruction = trace.pop_scratch(KEY_LAST_INSTRUCTION)
        if not instruction:
            return ""
        return f"## Task Handover Context\n### Current Instruction:\n{instruction}"

    def resolve_route(self, trace: TeamTrace, decision: str) -> Optional[str]:
        # The finish marker outranks any hand-off phrasing
        if trace.config.finish_marker.lower() in (decision or "").lower():
            return None
        names = self.agent_names(trace)
        source = trace.last_agent_name or ID_SUPERVISOR

        handoff = None
        if trace.last_agent_name:
            handoff = find_handoff(trace.last_agent_content(), names)
        if handoff is None:
            handoff = find_handoff(decision, names)
        if handoff is None:
            return super().resolve_route(trace, decision)

        target, instruction = handoff
        if self._is_ping_pong(trace, source, target):
            LOGGER.warning(f"A2A loop detected: {source} -> {target}")
            trace.add_step(ID_SUPERVISOR, f"Loop detected ({source} <-> {target}), terminating.")
            return ID_END

        if instruction:
            trace.set_scratch(KEY_LAST_INSTRUCTION, instruction)
        self._record_transfer(trace, source, target)
        LOGGER.info(f"A2A hand-off: {source} -> {target}")
        return target

    def on_team_finished(self, trace: TeamTrace) -> None:
        trace.pop_scratch(KEY_LAST_INSTRUCTION)
        trace.pop_scratch(KEY_TRANSFER_HISTORY)

    @staticmethod
    def _record_transfer(trace: TeamTrace, source: str, target: str) -> None:
        history = trace.setdefault_scratch(KEY_TRANSFER_HISTORY, [])
        history.append([source, target])
        if len(history) > TRANSFER_HISTORY_LIMIT:
            del history[0]

    @staticmethod
    def _is_ping_pong(trace: TeamTrace, source: str, target: str) -> bool:
        history = trace.get_scratch(KEY_TRANSFER_HISTORY)
        if not history:
            return False
        last_source, last_target = history[-1]
        return last_source == target and last_target == source


__all__ = ["A2AProtocol", "find_handoff"]
