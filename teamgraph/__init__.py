"""Multi-agent team coordination on LangGraph.

A team is a set of agents, a coordination protocol and a workflow graph.
``build`` compiles them once; ``TeamEngine.run`` walks the graph for a task,
letting the supervisor decision step pick the next agent until the task is
finished or a termination condition fires.
"""

from teamgraph.agents import AgentRegistry, ChatAgent, ChatModelAdapter, FunctionAgent
from teamgraph.errors import (
    GraphError,
    InterceptorError,
    ModelInvocationError,
    ParameterError,
    PermanentModelError,
    ProtocolError,
    TeamGraphError,
    TransientModelError,
)
from teamgraph.graph import GraphSpec, NodeKind, route_is
from teamgraph.intercept import (
    AuditInterceptor,
    HumanApprovalInterceptor,
    InterceptorChain,
    LoopingTeamInterceptor,
    TeamInterceptor,
)
from teamgraph.persistence import InMemorySession, SessionStore, StoredSession, open_session
from teamgraph.protocols import PROTOCOLS, TeamProtocol, create_protocol
from teamgraph.runtime import EngineOptions, TeamAgent, TeamEngine, build
from teamgraph.trace import TeamStep, TeamTrace

__all__ = [
    "AgentRegistry",
    "AuditInterceptor",
    "ChatAgent",
    "ChatModelAdapter",
    "EngineOptions",
    "FunctionAgent",
    "GraphError",
    "GraphSpec",
    "HumanApprovalInterceptor",
    "InMemorySession",
    "InterceptorChain",
    "InterceptorError",
    "LoopingTeamInterceptor",
    "ModelInvocationError",
    "NodeKind",
    "PROTOCOLS",
    "ParameterError",
    "PermanentModelError",
    "ProtocolError",
    "SessionStore",
    "StoredSession",
    "TeamAgent",
    "TeamEngine",
    "TeamGraphError",
    "TeamInterceptor",
    "TeamProtocol",
    "TeamStep",
    "TeamTrace",
    "TransientModelError",
    "build",
    "create_protocol",
    "open_session",
    "route_is",
]
