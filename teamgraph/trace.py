"""Per-invocation execution trace.

One ``TeamTrace`` exists per running task. It is the only mutable state the
graph walk touches: the supervisor writes ``route``, activities append steps,
and protocols keep their bookkeeping in ``scratch``. Engine, graph, agent
registry and protocol objects are shared between traces and never mutated.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from teamgraph.constants import ID_END, ID_SYSTEM

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TeamStep:
    """One entry of the append-only step log."""

    source: str
    content: str
    timestamp: float
    is_agent: bool = False
    duration_ms: int = 0


class TeamTrace:
    """Mutable execution state for one task invocation.

    Attributes:
        team_name: Owning team (engine) name
        task: Current task text
        route: Next node to visit, or ``ID_END``
        iteration_count: Completed decision cycles
        max_iterations: Cap on decision cycles
        steps: Ordered step log
        final_answer: Set once when the run finishes
        last_decision: Raw supervisor model output
        last_agent_name: Most recent agent that produced output
        route_history: Every route committed by the decision step
        scratch: Protocol-local key/value store
        error: Diagnostic text when the run failed
    """

    def __init__(
        self,
        team_name: str,
        task: str = "",
        *,
        max_iterations: int = 8,
        session_id: Optional[str] = None,
    ) -> None:
        self.team_name = team_name
        self.task = task
        self.max_iterations = max_iterations
        self.session_id = session_id

        self.route: Optional[str] = None
        self.iteration_count = 0
        self.steps: List[TeamStep] = []
        self.final_answer: Optional[str] = None
        self.last_decision: Optional[str] = None
        self.last_agent_name: Optional[str] = None
        self.route_history: List[str] = []
        self.scratch: Dict[str, Any] = {}
        self.error: Optional[str] = None
        self.turn_start = 0

        # Runtime-only references, never serialized
        self.config = None
        self.session = None
        self._cancel_event = threading.Event()
        self.cancel_reason: Optional[str] = None

    # ========== Step log ==========

    def add_step(self, source: str, content: str, *, is_agent: bool = False, duration_ms: int = 0) -> TeamStep:
        step = TeamStep(
            source=source,
            content=content if content is not None else "",
            timestamp=time.time(),
            is_agent=is_agent,
            duration_ms=duration_ms,
        )
        self.steps.append(step)
        LOGGER.debug(f"Trace [{self.team_name}] step added: source={source}, agent={is_agent}, duration={duration_ms}ms")
        return step

    def current_turn_steps(self) -> List[TeamStep]:
        """Steps recorded since the current task started."""
        return self.steps[self.turn_start:]

    def agent_steps(self) -> List[TeamStep]:
        return [step for step in self.steps if step.is_agent]

    def last_agent_content(self) -> str:
        """Return the most recent agent (non-supervisor) output, or an empty string."""
        for step in reversed(self.current_turn_steps()):
            if step.is_agent:
                return step.content
        return ""

    def formatted_history(self, window: int = 0, include_system: bool = True) -> str:
        """Render the collaboration history as Markdown.

        Args:
            window: Keep only the last ``window`` steps (0 keeps everything)
            include_system: Include supervisor/system steps
        """
        steps = self.steps if include_system else self.agent_steps()
        if not steps:
            return "No progress yet."

        if window > 0 and len(steps) > window:
            steps = steps[-window:]

        blocks = []
        for step in steps:
            title = "Expert Output" if step.is_agent else "System Instruction"
            blocks.append(f"### {title} from [{step.source}]:\n{step.content}")
        return "\n\n".join(blocks)

    # ========== Routing ==========

    def commit_route(self, route: str) -> None:
        """Record a route chosen by the decision step."""
        self.route = route
        if route != ID_END:
            self.route_history.append(route)

    @property
    def is_terminated(self) -> bool:
        return self.route == ID_END

    def terminate(self, reason: str, source: str = ID_SYSTEM) -> None:
        """Force terminal routing and leave a diagnostic step."""
        self.route = ID_END
        self.add_step(source, reason)
        LOGGER.info(f"Trace [{self.team_name}] terminated: {reason}")

    def fail(self, error: BaseException, source: str = ID_SYSTEM) -> None:
        """Mark the trace terminated because of a fatal error."""
        self.error = f"{type(error).__name__}: {error}"
        self.terminate(f"[Error] {self.error}", source=source)

    # ========== Cancellation ==========

    def cancel(self, reason: str = "Cancelled by caller") -> None:
        """Request cooperative cancellation; safe to call from another thread."""
        self.cancel_reason = reason
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # ========== Scratch store ==========

    def get_scratch(self, key: str, default: Any = None) -> Any:
        return self.scratch.get(key, default)

    def set_scratch(self, key: str, value: Any) -> None:
        self.scratch[key] = value

    def setdefault_scratch(self, key: str, default: Any) -> Any:
        return self.scratch.setdefault(key, default)

    def pop_scratch(self, key: str, default: Any = None) -> Any:
        return self.scratch.pop(key, default)

    # ========== Lifecycle ==========

    def reset_for_task(self, task: str) -> None:
        """Start a new task on this trace, keeping earlier steps as history."""
        self.task = task
        self.route = None
        self.iteration_count = 0
        self.final_answer = None
        self.last_decision = None
        self.route_history = []
        self.scratch = {}
        self.error = None
        self.turn_start = len(self.steps)
        self._cancel_event = threading.Event()
        self.cancel_reason = None

    def resume(self) -> None:
        """Walk again from Start, keeping task, steps, scratch and iteration count."""
        self.route = None
        self.error = None
        self._cancel_event = threading.Event()
        self.cancel_reason = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize persistent fields (runtime references are dropped)."""
        return {
            "team_name": self.team_name,
            "task": self.task,
            "max_iterations": self.max_iterations,
            "session_id": self.session_id,
            "route": self.route,
            "iteration_count": self.iteration_count,
            "steps": [asdict(step) for step in self.steps],
            "final_answer": self.final_answer,
            "last_decision": self.last_decision,
            "last_agent_name": self.last_agent_name,
            "route_history": list(self.route_history),
            "scratch": dict(self.scratch),
            "error": self.error,
            "turn_start": self.turn_start,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamTrace":
        trace = cls(
            data["team_name"],
            data.get("task", ""),
            max_iterations=data.get("max_iterations", 8),
            session_id=data.get("session_id"),
        )
        trace.route = data.get("route")
        trace.iteration_count = data.get("iteration_count", 0)
        trace.steps = [TeamStep(**step) for step in data.get("steps", [])]
        trace.final_answer = data.get("final_answer")
        trace.last_decision = data.get("last_decision")
        trace.last_agent_name = data.get("last_agent_name")
        trace.route_history = list(data.get("route_history", []))
        trace.scratch = dict(data.get("scratch", {}))
        trace.error = data.get("error")
        trace.turn_start = data.get("turn_start", 0)
        return trace

    def __repr__(self) -> str:
        return (
            f"TeamTrace(team={self.team_name!r}, route={self.route!r}, "
            f"iterations={self.iteration_count}/{self.max_iterations}, steps={len(self.steps)})"
        )


__all__ = ["TeamStep", "TeamTrace"]
