"""Interceptor hooks and the ordered chain that runs them."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from teamgraph.errors import InterceptorError
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)


class TeamInterceptor:
    """Lifecycle hooks. Only ``should_continue`` affects control flow."""

    def on_team_start(self, trace: TeamTrace) -> None:
        pass

    def on_team_end(self, trace: TeamTrace) -> None:
        pass

    def should_continue(self, trace: TeamTrace) -> bool:
        """Pre-decision gate; False forces terminal routing."""
        return True

    def on_model_start(self, trace: TeamTrace, system_prompt: str, user_prompt: str) -> None:
        pass

    def on_model_end(self, trace: TeamTrace, response: str) -> None:
        pass

    def on_decision(self, trace: TeamTrace, decision: str, route: str) -> None:
        pass

    def on_agent_start(self, trace: TeamTrace, agent: Any) -> None:
        pass

    def on_agent_end(self, trace: TeamTrace, agent: Any, output: str) -> None:
        pass


class InterceptorChain:
    """Runs interceptors in registration order.

    Any exception raised by a hook is wrapped in ``InterceptorError`` and
    propagated; the engine treats it as fatal for the invocation.
    """

    def __init__(self, interceptors: Iterable[TeamInterceptor] = ()) -> None:
        self._interceptors: tuple = tuple(interceptors)

    @property
    def interceptors(self) -> List[TeamInterceptor]:
        return list(self._interceptors)

    def __len__(self) -> int:
        return len(self._interceptors)

    def gate(self, trace: TeamTrace) -> Optional[TeamInterceptor]:
        """Return the first interceptor vetoing continuation, or None."""
        for interceptor in self._interceptors:
            if not self._call(interceptor, "should_continue", trace):
                LOGGER.info(f"Interceptor {type(interceptor).__name__} vetoed the next decision")
                return interceptor
        return None

    def on_team_start(self, trace: TeamTrace) -> None:
        self._notify("on_team_start", trace)

    def on_team_end(self, trace: TeamTrace) -> None:
        self._notify("on_team_end", trace)

    def on_model_start(self, trace: TeamTrace, system_prompt: str, user_prompt: str) -> None:
        self._notify("on_model_start", trace, system_prompt, user_prompt)

    def on_model_end(self, trace: TeamTrace, response: str) -> None:
        self._notify("on_model_end", trace, response)

    def on_decision(self, trace: TeamTrace, decision: str, route: str) -> None:
        self._notify("on_decision", trace, decision, route)

    def on_agent_start(self, trace: TeamTrace, agent: Any) -> None:
        self._notify("on_agent_start", trace, agent)

    def on_agent_end(self, trace: TeamTrace, agent: Any, output: str) -> None:
        self._notify("on_agent_end", trace, agent, output)

    def _notify(self, hook: str, *args) -> None:
        for interceptor in self._interceptors:
            self._call(interceptor, hook, *args)

    @staticmethod
    def _call(interceptor: TeamInterceptor, hook: str, *args):
        try:
            return getattr(interceptor, hook)(*args)
        except InterceptorError:
            raise
        except Exception as exc:
            LOGGER.error(f"Interceptor {type(interceptor).__name__}.{hook} raised {type(exc).__name__}: {exc}")
            raise InterceptorError(hook, interceptor, exc) from exc


__all__ = ["InterceptorChain", "TeamInterceptor"]
