"""Immutable workflow graph: typed nodes, guarded edges, next-hop resolution."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from teamgraph.errors import GraphError
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

Guard = Callable[[TeamTrace], bool]


class NodeKind(str, Enum):
    START = "start"
    ACTIVITY = "activity"
    EXCLUSIVE = "exclusive"
    END = "end"


@dataclass(frozen=True)
class Edge:
    """Directed edge; ``guard=None`` marks the unconditional default."""

    source: str
    target: str
    guard: Optional[Guard] = None
    label: str = ""

    @property
    def is_default(self) -> bool:
        return self.guard is None


@dataclass(frozen=True)
class Node:
    """A graph node.

    ``component`` is the agent bound to an Activity, or the task component
    (decision step, bidding) bound to an Activity/Exclusive. Pure gateways
    carry no component.
    """

    name: str
    kind: NodeKind
    edges: Tuple[Edge, ...] = ()
    component: Any = None

    @property
    def is_dynamic(self) -> bool:
        """Activity with no outgoing edge: follows ``trace.route``."""
        return self.kind is NodeKind.ACTIVITY and not self.edges


def route_is(name: str) -> Guard:
    """Guard matching when the last committed route equals ``name``."""

    def _guard(trace: TeamTrace) -> bool:
        return trace.route == name

    _guard.__name__ = f"route_is_{name}"
    return _guard


@dataclass(frozen=True)
class Graph:
    """Validated, immutable routing topology shared by every run."""

    nodes: Mapping[str, Node]
    start: str
    ends: Tuple[str, ...]
    order: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.nodes, MappingProxyType):
            object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))
        if not self.order:
            object.__setattr__(self, "order", tuple(self.nodes))

    @classmethod
    def from_nodes(cls, nodes: Iterable[Node]) -> "Graph":
        """Validate ``nodes`` and build a graph; raises ``GraphError`` on any defect."""
        node_map: Dict[str, Node] = {}
        for node in nodes:
            if node.name in node_map:
                raise GraphError(f"Duplicate node name: {node.name}")
            node_map[node.name] = node

        starts = [n.name for n in node_map.values() if n.kind is NodeKind.START]
        ends = tuple(n.name for n in node_map.values() if n.kind is NodeKind.END)
        if len(starts) != 1:
            raise GraphError(f"Graph must have exactly one start node, found {len(starts)}")
        if not ends:
            raise GraphError("Graph must have at least one end node")

        for node in node_map.values():
            _validate_node(node, node_map)

        graph = cls(nodes=node_map, start=starts[0], ends=ends, order=tuple(node_map))
        unreachable = [name for name in graph.order if name not in graph.reachable()]
        if unreachable:
            raise GraphError(f"Unreachable nodes: {', '.join(unreachable)}")

        LOGGER.debug(f"Graph validated: {len(node_map)} nodes, start={graph.start}, ends={list(ends)}")
        return graph

    # ========== Queries ==========

    def node(self, name: str) -> Node:
        try:
            return self.nodes[name]
        except KeyError:
            raise GraphError(f"Unknown node: {name}") from None

    def successors(self, name: str) -> List[str]:
        node = self.node(name)
        if node.is_dynamic:
            return list(self.order)
        return [edge.target for edge in node.edges]

    def reachable(self) -> set:
        seen = {self.start}
        queue = deque([self.start])
        while queue:
            for target in self.successors(queue.popleft()):
                if target not in seen:
                    seen.add(target)
                    queue.append(target)
        return seen

    # ========== Routing ==========

    def resolve_next_node(self, current: str, trace: TeamTrace) -> str:
        """Return the name of the node to visit after ``current``.

        Start/Activity nodes follow their single edge; dynamic Activities
        follow ``trace.route``. Exclusive gateways evaluate guards in
        declaration order; an unguarded edge is taken only when no earlier
        guard matched.

        Raises:
            GraphError: No edge matched, or the resolved target is unknown.
        """
        node = self.node(current)

        if node.kind is NodeKind.END:
            raise GraphError(f"End node '{current}' has no successor")

        if node.is_dynamic:
            target = trace.route
            if not target:
                raise GraphError(f"Activity '{current}' has no edge and the trace has no route")
        elif node.kind is NodeKind.EXCLUSIVE:
            target = None
            for edge in node.edges:
                if edge.guard is None or edge.guard(trace):
                    target = edge.target
                    break
            if target is None:
                raise GraphError(f"No guard matched at '{current}' (route={trace.route!r})")
        else:
            target = node.edges[0].target

        if target not in self.nodes:
            raise GraphError(f"Node '{current}' resolved to unknown node '{target}'")
        return target


def _validate_node(node: Node, node_map: Mapping[str, Node]) -> None:
    for edge in node.edges:
        if edge.target not in node_map:
            raise GraphError(f"Dangling edge {node.name} -> {edge.target}")

    if node.kind is NodeKind.START:
        if len(node.edges) != 1 or node.edges[0].guard is not None:
            raise GraphError(f"Start node '{node.name}' needs exactly one unguarded edge")
    elif node.kind is NodeKind.ACTIVITY:
        if len(node.edges) > 1:
            raise GraphError(f"Activity '{node.name}' may have at most one outgoing edge")
        if node.edges and node.edges[0].guard is not None:
            raise GraphError(f"Activity '{node.name}' edge may not be guarded")
    elif node.kind is NodeKind.EXCLUSIVE:
        if not any(edge.is_default for edge in node.edges):
            raise GraphError(f"Exclusive '{node.name}' has no default edge")
    elif node.kind is NodeKind.END and node.edges:
        raise GraphError(f"End node '{node.name}' may not have outgoing edges")


__all__ = ["Edge", "Graph", "Guard", "Node", "NodeKind", "route_is"]
