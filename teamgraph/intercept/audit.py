"""Interceptor that logs every lifecycle hook."""

from __future__ import annotations

import logging
from typing import Any, Optional

from teamgraph.intercept.base import TeamInterceptor
from teamgraph.trace import TeamTrace
from teamgraph.utils.logging_utils import log_trace_summary, truncate

LOGGER = logging.getLogger(__name__)


class AuditInterceptor(TeamInterceptor):
    def __init__(self, logger: Optional[logging.Logger] = None, limit: int = 200) -> None:
        self.logger = logger or LOGGER
        self.limit = limit

    def on_team_start(self, trace: TeamTrace) -> None:
        self.logger.info(f"[audit] team={trace.team_name} start task={truncate(trace.task, self.limit)}")

    def on_team_end(self, trace: TeamTrace) -> None:
        log_trace_summary(self.logger, trace)

    def on_model_start(self, trace: TeamTrace, system_prompt: str, user_prompt: str) -> None:
        self.logger.info(f"[audit] team={trace.team_name} model call #{trace.iteration_count + 1}")

    def on_model_end(self, trace: TeamTrace, response: str) -> None:
        self.logger.info(f"[audit] team={trace.team_name} model response: {truncate(response, self.limit)}")

    def on_decision(self, trace: TeamTrace, decision: str, route: str) -> None:
        self.logger.info(f"[audit] team={trace.team_name} decision -> {route}")

    def on_agent_start(self, trace: TeamTrace, agent: Any) -> None:
        self.logger.info(f"[audit] team={trace.team_name} agent {agent.name} start")

    def on_agent_end(self, trace: TeamTrace, agent: Any, output: str) -> None:
        self.logger.info(f"[audit] team={trace.team_name} agent {agent.name} output: {truncate(output, self.limit)}")


__all__ = ["AuditInterceptor"]
