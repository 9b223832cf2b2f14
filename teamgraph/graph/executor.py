"""Compile a validated ``Graph`` into a LangGraph state machine and walk it.

Every graph node becomes one LangGraph node. Non-terminal nodes get a
conditional edge whose router is ``Graph.resolve_next_node``; End nodes are
wired to LangGraph's ``END``. The walk is synchronous on the calling thread.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict

from langgraph.errors import GraphRecursionError
from langgraph.graph import END, START, StateGraph

from teamgraph.constants import ID_END
from teamgraph.graph.model import Graph, Node, NodeKind
from teamgraph.graph.state import TeamState
from teamgraph.tasks.base import TaskComponent
from teamgraph.trace import TeamTrace
from teamgraph.utils.logging_utils import log_routing_decision, truncate

LOGGER = logging.getLogger(__name__)


class GraphExecutor:
    """Walks one compiled graph for one team configuration.

    Holds no per-run state; the same executor serves concurrent traces.
    """

    def __init__(self, graph: Graph, config) -> None:
        self.graph = graph
        self.config = config
        self._app = self._compile()

    @property
    def recursion_limit(self) -> int:
        factor = self.config.step_limit_factor
        return factor * (self.config.max_iterations + len(self.graph.nodes)) + 10

    def walk(self, trace: TeamTrace) -> TeamTrace:
        """Run the graph from Start until an End node is reached."""
        LOGGER.info(f"[{self.config.name}] Walking graph from '{self.graph.start}' (limit={self.recursion_limit})")
        try:
            result = self._app.invoke(
                {"team_trace": trace, "team_task": trace.task},
                config={"recursion_limit": self.recursion_limit},
            )
        except GraphRecursionError:
            LOGGER.warning(f"[{self.config.name}] Step limit {self.recursion_limit} reached, forcing termination")
            trace.terminate(f"Step limit reached ({self.recursion_limit} graph steps); run terminated.")
            return trace
        return result.get("team_trace", trace)

    # ========== Compilation ==========

    def _compile(self):
        builder = StateGraph(TeamState)
        path_map = {name: name for name in self.graph.order}

        for name in self.graph.order:
            builder.add_node(name, self._build_node(self.graph.nodes[name]))

        builder.add_edge(START, self.graph.start)
        for name in self.graph.order:
            node = self.graph.nodes[name]
            if node.kind is NodeKind.END:
                builder.add_edge(name, END)
            else:
                builder.add_conditional_edges(name, self._build_router(name), path_map)

        return builder.compile()

    def _build_router(self, current: str) -> Callable[[TeamState], str]:
        graph = self.graph
        team = self.config.name

        def route(state: TeamState) -> str:
            trace = state["team_trace"]
            if trace.cancelled:
                target = graph.ends[0]
                reason = f"cancelled ({trace.cancel_reason})"
            elif trace.route == ID_END and ID_END not in graph.nodes:
                target = graph.ends[0]
                reason = "trace terminated"
            else:
                target = graph.resolve_next_node(current, trace)
                reason = f"route={trace.route}"
            log_routing_decision(LOGGER, f"{team}/{current}", target, reason)
            return target

        return route

    def _build_node(self, node: Node) -> Callable[[TeamState], Dict]:
        if node.kind is NodeKind.END:
            return self._end_node(node)
        if node.kind is NodeKind.START or node.component is None:
            return _passthrough
        if isinstance(node.component, TaskComponent):
            return self._task_node(node)
        return self._activity_node(node)

    # ========== Node bodies ==========

    def _end_node(self, node: Node):
        def end_node(state: TeamState) -> Dict:
            trace = state["team_trace"]
            trace.route = ID_END
            LOGGER.debug(f"[{self.config.name}] Reached end node '{node.name}'")
            return {"team_trace": trace}

        return end_node

    def _task_node(self, node: Node):
        task: TaskComponent = node.component

        def task_node(state: TeamState) -> Dict:
            trace = state["team_trace"]
            task.run(trace)
            return {"team_trace": trace}

        return task_node

    def _activity_node(self, node: Node):
        agent = node.component
        config = self.config

        def activity_node(state: TeamState) -> Dict:
            trace = state["team_trace"]
            if trace.cancelled:
                if not trace.is_terminated:
                    trace.terminate(f"Cancelled before '{agent.name}': {trace.cancel_reason}")
                return {"team_trace": trace}

            config.interceptors.on_agent_start(trace, agent)
            LOGGER.info(f"[{config.name}] Dispatching agent '{agent.name}'")
            started = time.monotonic()
            output = agent.invoke(trace.task, trace)
            duration_ms = int((time.monotonic() - started) * 1000)
            output = "" if output is None else str(output)

            trace.add_step(agent.name, output, is_agent=True, duration_ms=duration_ms)
            trace.last_agent_name = agent.name
            LOGGER.info(f"[{config.name}] Agent '{agent.name}' done in {duration_ms}ms: {truncate(output, 120)}")

            config.protocol.on_agent_end(trace, agent.name, output)
            config.interceptors.on_agent_end(trace, agent, output)
            return {"team_trace": trace}

        return activity_node


def _passthrough(state: TeamState) -> Dict:
    return {"team_trace": state["team_trace"]}


__all__ = ["GraphExecutor"]
