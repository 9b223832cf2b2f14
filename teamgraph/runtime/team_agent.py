"""Nested teams: a ``TeamEngine`` exposed through the ``Agent`` capability."""

from __future__ import annotations

import logging
from typing import Optional

from teamgraph.persistence.session import AgentSession, InMemorySession
from teamgraph.trace import TeamTrace

from .engine import TeamEngine

LOGGER = logging.getLogger(__name__)


class TeamAgent:
    """Runs a child team synchronously as one worker of a parent team.

    The child owns its own trace, kept in a child session of the parent's
    session so repeated invocations continue the child's history.
    """

    def __init__(self, engine: TeamEngine, description: Optional[str] = None) -> None:
        self.engine = engine
        self.name = engine.name
        self.description = description or engine.config.description or f"Team of {', '.join(engine.config.agents)}"

    def invoke(self, task: str, trace: TeamTrace) -> str:
        session = self._child_session(trace)
        LOGGER.info(f"Nested team '{self.name}' started in session {session.session_id}")
        answer, child_trace = self.engine.run(task, session)
        LOGGER.info(f"Nested team '{self.name}' finished after {child_trace.iteration_count} iteration(s)")
        return answer or ""

    def estimate(self, task: str) -> str:
        members = "; ".join(
            f"{name} ({getattr(agent, 'description', '') or 'no description'})"
            for name, agent in self.engine.config.agents.items()
        )
        return (
            f"Team '{self.name}' ({self.engine.config.protocol.name}) can take this task "
            f"with {len(self.engine.config.agents)} members: {members}"
        )

    def child_trace(self, trace: TeamTrace) -> Optional[TeamTrace]:
        """Return the child team's trace for the parent ``trace``, if it ran."""
        return self.engine.get_trace(self._child_session(trace))

    def _child_session(self, trace: TeamTrace) -> AgentSession:
        parent: Optional[AgentSession] = trace.session
        if parent is not None:
            return parent.child(self.name)
        return InMemorySession(f"{trace.session_id}/{self.name}")

    def __repr__(self) -> str:
        return f"TeamAgent({self.name!r})"


__all__ = ["TeamAgent"]
