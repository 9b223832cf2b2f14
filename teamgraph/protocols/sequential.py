"""Fixed pipeline: agents run in registration order, no decision step."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from teamgraph.constants import ID_END, ID_START
from teamgraph.errors import GraphError
from teamgraph.graph.builder import GraphSpec
from teamgraph.protocols.base import TeamProtocol
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

KEY_STAGES = "sequence_stages"


class SequentialProtocol(TeamProtocol):
    name = "SEQUENTIAL"

    def build_graph(self, spec: GraphSpec, agents: Mapping[str, Any]) -> None:
        names = list(agents)
        if not names:
            raise GraphError("Sequential protocol needs at least one agent")
        spec.add_start(ID_START).link_add(names[0])
        for current, following in zip(names, names[1:] + [ID_END]):
            spec.add_activity(current).link_add(following)
        spec.add_end(ID_END)

    def components(self, config) -> Dict[str, Any]:
        return {}

    def on_agent_end(self, trace: TeamTrace, agent_name: str, output: str) -> None:
        stage = self.bump_counter(trace, KEY_STAGES, agent_name)
        LOGGER.debug(f"Sequential stage '{agent_name}' completed (runs={stage})")

    def on_team_finished(self, trace: TeamTrace) -> None:
        trace.pop_scratch(KEY_STAGES)


__all__ = ["SequentialProtocol"]
