"""Shared blackboard: every decision sees the complete history plus the board."""

from __future__ import annotations

import logging

from teamgraph.protocols.base import dump_json, sniff_json
from teamgraph.protocols.hierarchical import HierarchicalProtocol
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

KEY_BOARD = "blackboard"

SUMMARY_MAX_LENGTH = 1000
ENTRY_MAX_LENGTH = 80
RECENT_ENTRIES = 5


class BlackboardProtocol(HierarchicalProtocol):
    name = "BLACKBOARD"

    def prepare_instruction(self, trace: TeamTrace) -> str:
        return (
            f"## Collaboration Protocol: {self.name}\n"
            "1. **Blackboard Mechanism**: All experts see the complete collaboration history as a shared blackboard.\n"
            "2. **Gap-Driven**: Actively identify gaps, contradictions, or areas needing improvement on the blackboard.\n"
            "3. **Opportunistic Collaboration**: Assign the expert best suited to solve the most pressing current issue.\n"
            "4. **Progressive Refinement**: Refine the solution through iterations, solving one specific problem at a time."
        )

    def history_window(self, trace: TeamTrace) -> int:
        return 0

    def prepare_context(self, trace: TeamTrace) -> str:
        sections = []
        board = trace.get_scratch(KEY_BOARD)
        if board:
            sections.append(f"### Blackboard Data\n```json\n{dump_json(board)}\n```")
        summary = self.summarize(trace)
        if summary:
            sections.append(f"### Current Blackboard Summary\n{summary}")
        return "\n\n".join(sections)

    def summarize(self, trace: TeamTrace) -> str:
        steps = trace.current_turn_steps()
        if not steps:
            return ""

        lines = [f"Current blackboard has {len(steps)} entries:"]
        for step in steps[-RECENT_ENTRIES:]:
            content = " ".join((step.content or "No content").split())
            if len(content) > ENTRY_MAX_LENGTH:
                content = content[:ENTRY_MAX_LENGTH] + "..."
            lines.append(f"- **{step.source}**: {content}")

        if len(steps) >= 2 and steps[-1].source == steps[-2].source:
            lines.append("")
            lines.append("Note: Same expert executed consecutively, may need other expert review.")

        summary = "\n".join(lines)
        if len(summary) > SUMMARY_MAX_LENGTH:
            summary = summary[:SUMMARY_MAX_LENGTH] + "..."
        return summary

    def on_agent_end(self, trace: TeamTrace, agent_name: str, output: str) -> None:
        data = sniff_json(output)
        if isinstance(data, dict):
            board = trace.setdefault_scratch(KEY_BOARD, {})
            board.update(data)
            LOGGER.debug(f"Blackboard updated by '{agent_name}': keys={list(data)}")

    def on_team_finished(self, trace: TeamTrace) -> None:
        LOGGER.debug(f"Blackboard finished with {len(trace.current_turn_steps())} entries")
        trace.pop_scratch(KEY_BOARD)
        super().on_team_finished(trace)


__all__ = ["BlackboardProtocol"]
