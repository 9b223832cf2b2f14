"""Manual workflows: the caller's graph edges are the only routing mechanism."""

from __future__ import annotations

from typing import Any, Mapping

from teamgraph.graph.builder import GraphSpec
from teamgraph.protocols.base import TeamProtocol
from teamgraph.trace import TeamTrace


class NoneProtocol(TeamProtocol):
    """Builds no topology and never lets the decision step run."""

    name = "NONE"

    def build_graph(self, spec: GraphSpec, agents: Mapping[str, Any]) -> None:
        pass

    def should_run(self, trace: TeamTrace) -> bool:
        return False


__all__ = ["NoneProtocol"]
