"""Peer swarm: load-balanced relays driven by usage counters and a task pool."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from teamgraph.constants import ID_END, ID_START, ID_SUPERVISOR
from teamgraph.errors import GraphError
from teamgraph.graph.builder import GraphSpec
from teamgraph.protocols.base import TeamProtocol, dump_json, sniff_json
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

KEY_SWARM = "swarm_state"


class SwarmProtocol(TeamProtocol):
    name = "SWARM"

    def build_graph(self, spec: GraphSpec, agents: Mapping[str, Any]) -> None:
        names = list(agents)
        if not names:
            raise GraphError("Swarm protocol needs at least one agent")
        spec.add_start(ID_START).link_add(names[0])
        for name in names:
            spec.add_activity(name).link_add(ID_SUPERVISOR)
        self.add_supervisor_hub(spec, agents)
        spec.add_end(ID_END)

    def prepare_instruction(self, trace: TeamTrace) -> str:
        return (
            f"{super().prepare_instruction(trace)}\n"
            "- You are in 'Swarm Mode'. Observe environment state (JSON dashboard) to decide task relays.\n"
            "- Focus on collective progress and balance member load."
        )

    def prepare_context(self, trace: TeamTrace) -> str:
        state = self._state(trace)
        return (
            "### Swarm Dashboard\n"
            f"```json\n{dump_json(state)}\n```\n"
            "> Instructions: Check `task_pool` for pending items. If an agent's `pheromones` value is too high, "
            "it may be stuck; try dispatching another expert."
        )

    def on_routed(self, trace: TeamTrace, target: str) -> None:
        state = self._state(trace)
        if target in trace.config.agents:
            state["pheromones"][target] = state["pheromones"].get(target, 0) + 1
        state["task_pool"] = [item for item in state["task_pool"] if str(item).strip().lower() != target.lower()]
        LOGGER.debug(f"Swarm routing to '{target}', usage={state['pheromones'].get(target, 0)}")

    def on_agent_end(self, trace: TeamTrace, agent_name: str, output: str) -> None:
        data = sniff_json(output)
        if isinstance(data, dict) and isinstance(data.get("sub_tasks"), list):
            self._state(trace)["task_pool"].extend(data["sub_tasks"])
            LOGGER.debug(f"Swarm task pool extended by '{agent_name}' with {len(data['sub_tasks'])} items")

    def on_team_finished(self, trace: TeamTrace) -> None:
        trace.pop_scratch(KEY_SWARM)

    @staticmethod
    def _state(trace: TeamTrace) -> dict:
        return trace.setdefault_scratch(KEY_SWARM, {"pheromones": {}, "task_pool": []})


__all__ = ["SwarmProtocol"]
