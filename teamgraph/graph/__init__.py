"""Workflow graph model, builder and LangGraph executor."""

from .builder import GraphSpec, NodeSpec
from .executor import GraphExecutor
from .model import Edge, Graph, Node, NodeKind, route_is
from .state import STATE_KEYS, TeamState

__all__ = [
    "Edge",
    "Graph",
    "GraphExecutor",
    "GraphSpec",
    "Node",
    "NodeKind",
    "NodeSpec",
    "STATE_KEYS",
    "TeamState",
    "route_is",
]
