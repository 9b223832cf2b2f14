"""Single lead supervisor with full authority over every member."""

from __future__ import annotations

import logging

from teamgraph.constants import ID_END, ID_SUPERVISOR
from teamgraph.protocols.base import TeamProtocol, dump_json, sniff_json
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

KEY_HIERARCHY_STATE = "hierarchy_state"
KEY_AGENT_USAGE = "agent_usage"


class HierarchicalProtocol(TeamProtocol):
    name = "HIERARCHICAL"

    def prepare_instruction(self, trace: TeamTrace) -> str:
        usage = trace.get_scratch(KEY_AGENT_USAGE, {})
        lines = [
            f"## Protocol: {self.name}",
            "You are the lead supervisor with full authority over the team. "
            "Members only act when you assign them; decide who works next or finish the task.",
            "",
            "### Members",
        ]
        for name, agent in trace.config.agents.items():
            description = getattr(agent, "description", "") or "No description"
            lines.append(f"- **{name}** (assigned {usage.get(name, 0)}x): {description}")
        lines += [
            "",
            "## Hierarchical Rules",
            "- **Check Dashboard**: Look at the `completed` list to avoid redundant tasks.",
            "- **Balance Load**: If an agent is overused, consider alternatives.",
            "- **State Sync**: Ask experts to report in structured JSON with a 'done' field.",
        ]
        return "\n".join(lines)

    def prepare_context(self, trace: TeamTrace) -> str:
        state = trace.get_scratch(KEY_HIERARCHY_STATE)
        if not state:
            return ""
        return f"### Progress Dashboard\n```json\n{dump_json(state)}\n```"

    def on_routed(self, trace: TeamTrace, target: str) -> None:
        if target not in (ID_SUPERVISOR, ID_END):
            self.bump_counter(trace, KEY_AGENT_USAGE, target)

    def on_agent_end(self, trace: TeamTrace, agent_name: str, output: str) -> None:
        report = sniff_json(output)
        if not isinstance(report, dict):
            return
        state = trace.setdefault_scratch(KEY_HIERARCHY_STATE, {})
        for key, value in report.items():
            if key.lower() == "done":
                state.setdefault("completed", []).append(value if isinstance(value, str) else dump_json(value))
            else:
                state[key] = value
        LOGGER.debug(f"Hierarchy dashboard updated by '{agent_name}': {list(report)}")

    def on_team_finished(self, trace: TeamTrace) -> None:
        trace.pop_scratch(KEY_HIERARCHY_STATE)
        trace.pop_scratch(KEY_AGENT_USAGE)


__all__ = ["HierarchicalProtocol"]
