"""Declarative builder for the workflow graph.

Example:
    spec = GraphSpec()
    spec.add_start("start").link_add("Coder")
    spec.add_activity("Coder").link_add("Reviewer")
    spec.add_activity("Reviewer").link_add("end")
    spec.add_end("end")
    graph = spec.compile(registry)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from teamgraph.errors import GraphError
from teamgraph.graph.model import Edge, Graph, Guard, Node, NodeKind
from teamgraph.graph.state import STATE_KEYS

LOGGER = logging.getLogger(__name__)

_FORBIDDEN_CHARS = (":", "|")


class NodeSpec:
    """Mutable node declaration; ``link_add`` calls chain."""

    def __init__(self, name: str, kind: NodeKind, task: Any = None) -> None:
        self.name = name
        self.kind = kind
        self.task = task
        self.links: List[Edge] = []

    def link_add(self, target: str, guard: Optional[Guard] = None, label: str = "") -> "NodeSpec":
        if not target:
            raise GraphError(f"Empty link target on node '{self.name}'")
        self.links.append(Edge(source=self.name, target=target, guard=guard, label=label))
        return self

    def link_remove(self, target: str) -> "NodeSpec":
        self.links = [edge for edge in self.links if edge.target != target]
        return self

    def __repr__(self) -> str:
        return f"NodeSpec({self.name!r}, {self.kind.value}, links={[e.target for e in self.links]})"


class GraphSpec:
    """Collects node declarations and compiles them into an immutable ``Graph``."""

    def __init__(self) -> None:
        self._nodes: Dict[str, NodeSpec] = {}

    # ========== Declaration ==========

    def add_start(self, name: str) -> NodeSpec:
        return self._add(NodeSpec(name, NodeKind.START))

    def add_activity(self, agent_or_name: Union[str, Any], task: Any = None) -> NodeSpec:
        """Declare an Activity bound to an agent (or to a task component).

        ``agent_or_name`` may be an agent object (its ``name`` is used and the
        agent is bound directly) or a name resolved at compile time.
        """
        if isinstance(agent_or_name, str):
            return self._add(NodeSpec(agent_or_name, NodeKind.ACTIVITY, task=task))
        name = getattr(agent_or_name, "name", None)
        if not isinstance(name, str):
            raise GraphError(f"Activity target has no usable name: {agent_or_name!r}")
        return self._add(NodeSpec(name, NodeKind.ACTIVITY, task=task or agent_or_name))

    def add_exclusive(self, name: str, task: Any = None) -> NodeSpec:
        return self._add(NodeSpec(name, NodeKind.EXCLUSIVE, task=task))

    def add_end(self, name: str) -> NodeSpec:
        return self._add(NodeSpec(name, NodeKind.END))

    def link_agents(self, source: str, targets: Iterable[str], guard_factory=None) -> NodeSpec:
        """Link ``source`` to every name in ``targets`` (guarded via ``guard_factory(name)`` if given)."""
        node = self.get(source)
        for target in targets:
            node.link_add(target, guard_factory(target) if guard_factory else None)
        return node

    # ========== Inspection / editing ==========

    def get(self, name: str) -> NodeSpec:
        try:
            return self._nodes[name]
        except KeyError:
            raise GraphError(f"Node not declared: {name}") from None

    def has(self, name: str) -> bool:
        return name in self._nodes

    def remove(self, name: str) -> None:
        self._nodes.pop(name, None)
        for node in self._nodes.values():
            node.link_remove(name)

    @property
    def node_names(self) -> List[str]:
        return list(self._nodes)

    # ========== Compilation ==========

    def compile(self, agents: Optional[Mapping[str, Any]] = None, components: Optional[Mapping[str, Any]] = None) -> Graph:
        """Resolve components and validate the topology.

        Args:
            agents: name -> Agent map used for Activity nodes declared by name
            components: name -> task component (decision step, bidding) map

        Raises:
            GraphError: Any topology defect or an Activity with nothing bound to it.
        """
        agents = agents or {}
        components = components or {}
        nodes = []
        for spec in self._nodes.values():
            component = spec.task
            if component is None and spec.kind in (NodeKind.ACTIVITY, NodeKind.EXCLUSIVE):
                component = components.get(spec.name) or agents.get(spec.name)
            if spec.kind is NodeKind.ACTIVITY and component is None:
                raise GraphError(f"Activity '{spec.name}' is not bound to any agent or task")
            nodes.append(Node(name=spec.name, kind=spec.kind, edges=tuple(spec.links), component=component))

        graph = Graph.from_nodes(nodes)
        LOGGER.info(f"Compiled graph: {' '.join(graph.order)}")
        return graph

    def _add(self, node: NodeSpec) -> NodeSpec:
        name = node.name
        if not name or not name.strip():
            raise GraphError("Node name must be non-empty")
        if any(ch in name for ch in _FORBIDDEN_CHARS):
            raise GraphError(f"Node name '{name}' may not contain ':' or '|'")
        if name in STATE_KEYS:
            raise GraphError(f"Node name '{name}' collides with a state key")
        if name in self._nodes:
            raise GraphError(f"Duplicate node name: {name}")
        self._nodes[name] = node
        return node


__all__ = ["GraphSpec", "NodeSpec"]
