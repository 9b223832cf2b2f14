"""Team engine: one-time assembly plus the blocking ``run`` entry point."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from teamgraph.agents.chat_agent import as_language_model
from teamgraph.agents.registry import AgentRegistry
from teamgraph.config import Settings, get_settings
from teamgraph.constants import ID_SUPERVISOR
from teamgraph.errors import InterceptorError, ParameterError
from teamgraph.graph.builder import GraphSpec
from teamgraph.graph.executor import GraphExecutor
from teamgraph.intercept import InterceptorChain, TeamInterceptor
from teamgraph.persistence.session import AgentSession, InMemorySession
from teamgraph.protocols import NoneProtocol, TeamProtocol, create_protocol
from teamgraph.trace import TeamTrace
from teamgraph.utils.logging_utils import log_trace_summary

from .model_resolver import resolve_supervisor_model
from .options import EngineOptions, TeamConfig

LOGGER = logging.getLogger(__name__)

GraphAdjuster = Callable[[GraphSpec], Optional[GraphSpec]]


class TeamEngine:
    """Compiled team: immutable graph, registry, protocol and interceptor chain.

    An engine holds no per-run state. Each ``run`` works on the trace stored in
    the given session, so one engine serves any number of concurrent sessions.
    """

    def __init__(self, config: TeamConfig, executor: GraphExecutor) -> None:
        self.config = config
        self.executor = executor

    @classmethod
    def build(
        cls,
        graph_spec: Optional[GraphSpec] = None,
        agents: Union[AgentRegistry, Mapping[str, Any], Iterable[Any]] = (),
        protocol: Union[str, TeamProtocol, None] = None,
        options: Optional[EngineOptions] = None,
        *,
        model: Any = None,
        interceptors: Iterable[TeamInterceptor] = (),
        graph_adjuster: Optional[GraphAdjuster] = None,
        settings: Optional[Settings] = None,
    ) -> "TeamEngine":
        """Assemble and validate a team.

        Args:
            graph_spec: Explicit topology; when omitted the protocol declares its default one
            agents: Workers, as a registry, a name map or an iterable
            protocol: Protocol instance or registered name (default: hierarchical)
            options: Per-engine overrides of ``TeamSettings``
            model: Supervisor ``LanguageModel`` or LangChain chat model; resolved from
                ``MODEL_*`` settings when the graph needs one and none is given
            interceptors: Hooks run in registration order
            graph_adjuster: Callable amending (or returning a replacement for) the ``GraphSpec``

        Raises:
            GraphError: Invalid options, agents or topology.
            ProtocolError: Unknown protocol name.
        """
        settings = settings or get_settings()
        options = options or EngineOptions()
        registry = AgentRegistry.of(agents)
        protocol = create_protocol(protocol)

        spec = graph_spec
        if spec is None:
            spec = GraphSpec()
            protocol.build_graph(spec, registry)
        if graph_adjuster is not None:
            spec = graph_adjuster(spec) or spec

        if model is not None:
            model = as_language_model(model)
        elif spec.has(ID_SUPERVISOR) and not isinstance(protocol, NoneProtocol):
            model = resolve_supervisor_model(settings)

        config = TeamConfig.resolve(
            options,
            settings,
            agents=registry,
            protocol=protocol,
            interceptors=InterceptorChain(interceptors),
            model=model,
        )
        graph = spec.compile(registry, protocol.components(config))
        engine = cls(config, GraphExecutor(graph, config))
        LOGGER.info(
            f"[{config.name}] Engine built: protocol={protocol.name}, agents={registry.names}, "
            f"nodes={len(graph.nodes)}, max_iterations={config.max_iterations}"
        )
        return engine

    # ========== Properties ==========

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def graph(self):
        return self.executor.graph

    @property
    def trace_key(self) -> str:
        return f"teamgraph:trace:{self.config.name}"

    # ========== Execution ==========

    def run(self, task: Optional[str] = None, session: Optional[AgentSession] = None) -> Tuple[Optional[str], TeamTrace]:
        """Run one task to completion and return ``(final_answer, trace)``.

        A non-empty ``task`` starts a new turn on the session's trace (earlier
        steps stay visible as history). An empty ``task`` resumes the stored
        trace where it stopped.

        Raises:
            ParameterError: Empty task with no stored trace to resume.
            ModelInvocationError: Supervisor model failed after all retries.
            InterceptorError: An interceptor hook raised.
        """
        session = session if session is not None else InMemorySession()
        trace = self._prepare_trace(task, session)
        trace.config = self.config
        trace.session = session

        failed = False
        try:
            self.config.interceptors.on_team_start(trace)
            trace = self.executor.walk(trace)
            if trace.final_answer is None:
                fallback = trace.last_agent_content()
                trace.final_answer = fallback or None
        except Exception as exc:
            failed = True
            LOGGER.error(f"[{self.config.name}] Run failed: {type(exc).__name__}: {exc}")
            trace.fail(exc)
            raise
        finally:
            self._close(trace, session, notify=not failed)
        return trace.final_answer, trace

    def get_trace(self, session: AgentSession) -> Optional[TeamTrace]:
        """Return the trace stored for this team in ``session``, if any."""
        trace = session.get(self.trace_key)
        return trace if isinstance(trace, TeamTrace) else None

    def cancel(self, session: AgentSession, reason: str = "Cancelled by caller") -> bool:
        """Flag the session's trace for cooperative cancellation."""
        trace = self.get_trace(session)
        if trace is None:
            return False
        trace.cancel(reason)
        return True

    def _prepare_trace(self, task: Optional[str], session: AgentSession) -> TeamTrace:
        stored = self.get_trace(session)
        task = (task or "").strip()

        if not task:
            if stored is None:
                raise ParameterError(
                    "Empty task and no stored trace to resume",
                    user_message="Provide a task or a session holding a previous run.",
                )
            LOGGER.info(f"[{self.config.name}] Resuming trace at iteration {stored.iteration_count}")
            stored.resume()
            return stored

        if stored is not None:
            LOGGER.info(f"[{self.config.name}] New turn on session {session.session_id}")
            stored.reset_for_task(task)
            stored.max_iterations = self.config.max_iterations
            return stored

        trace = TeamTrace(
            self.config.name,
            task,
            max_iterations=self.config.max_iterations,
            session_id=session.session_id,
        )
        session.put(self.trace_key, trace)
        return trace

    def _close(self, trace: TeamTrace, session: AgentSession, notify: bool) -> None:
        self.config.protocol.on_team_finished(trace)
        try:
            if notify:
                self.config.interceptors.on_team_end(trace)
        except InterceptorError as exc:
            trace.fail(exc)
            raise
        finally:
            session.put(self.trace_key, trace)
            log_trace_summary(LOGGER, trace)

    def __repr__(self) -> str:
        return f"TeamEngine(name={self.config.name!r}, protocol={self.config.protocol.name})"


def build(
    graph_spec: Optional[GraphSpec] = None,
    agents: Union[AgentRegistry, Mapping[str, Any], Iterable[Any]] = (),
    protocol: Union[str, TeamProtocol, None] = None,
    options: Optional[EngineOptions] = None,
    **kwargs,
) -> TeamEngine:
    """Module-level shortcut for ``TeamEngine.build``."""
    return TeamEngine.build(graph_spec, agents, protocol, options, **kwargs)


__all__ = ["GraphAdjuster", "TeamEngine", "build"]
