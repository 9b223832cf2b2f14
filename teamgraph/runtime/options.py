"""Per-engine options and the resolved, immutable team configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Optional

from teamgraph.agents.interfaces import LanguageModel
from teamgraph.agents.registry import AgentRegistry
from teamgraph.config import Settings
from teamgraph.errors import GraphError
from teamgraph.guard import TerminationGuard
from teamgraph.intercept import InterceptorChain
from teamgraph.markers import default_finish_marker
from teamgraph.prompts import DEFAULT_SUPERVISOR_ROLE


@dataclass(frozen=True)
class EngineOptions:
    """Overrides passed to ``build``; ``None`` falls back to ``TeamSettings``."""

    name: str = "team"
    description: str = ""
    max_iterations: Optional[int] = None
    max_retries: Optional[int] = None
    retry_delay_ms: Optional[int] = None
    finish_marker: Optional[str] = None
    history_window: Optional[int] = None
    loop_min_cycle: Optional[int] = None
    loop_min_repeats: Optional[int] = None
    step_limit_factor: Optional[int] = None
    supervisor_role: Optional[str] = None
    log_prompt_max_length: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise GraphError("Team name must be non-empty")
        for key, minimum in (
            ("max_iterations", 1),
            ("max_retries", 1),
            ("step_limit_factor", 1),
            ("loop_min_cycle", 2),
            ("loop_min_repeats", 2),
        ):
            value = getattr(self, key)
            if value is not None and value < minimum:
                raise GraphError(f"{key} must be >= {minimum}, got {value}")
        for key in ("retry_delay_ms", "history_window"):
            value = getattr(self, key)
            if value is not None and value < 0:
                raise GraphError(f"{key} must be >= 0, got {value}")

    @classmethod
    def from_dict(cls, data: dict) -> "EngineOptions":
        known = {field.name for field in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise GraphError(f"Unknown engine options: {sorted(unknown)}")
        return cls(**data)


@dataclass(frozen=True)
class TeamConfig:
    """Everything a run reads besides the trace. Shared by all traces of an engine."""

    name: str
    description: str
    agents: AgentRegistry
    protocol: Any
    interceptors: InterceptorChain
    model: Optional[LanguageModel]
    guard: TerminationGuard
    finish_marker: str
    max_iterations: int
    max_retries: int
    retry_delay_ms: int
    history_window: int
    step_limit_factor: int
    supervisor_role: str
    log_prompt_max_length: int

    @classmethod
    def resolve(
        cls,
        options: EngineOptions,
        settings: Settings,
        *,
        agents: AgentRegistry,
        protocol: Any,
        interceptors: InterceptorChain,
        model: Optional[LanguageModel],
    ) -> "TeamConfig":
        team = settings.team

        def pick(key: str, default):
            value = getattr(options, key)
            return default if value is None else value

        guard = TerminationGuard(
            min_cycle=pick("loop_min_cycle", team.loop_min_cycle),
            min_repeats=pick("loop_min_repeats", team.loop_min_repeats),
        )
        return cls(
            name=options.name,
            description=options.description,
            agents=agents,
            protocol=protocol,
            interceptors=interceptors,
            model=model,
            guard=guard,
            finish_marker=pick("finish_marker", team.finish_marker) or default_finish_marker(options.name),
            max_iterations=pick("max_iterations", team.max_iterations),
            max_retries=pick("max_retries", team.max_retries),
            retry_delay_ms=pick("retry_delay_ms", team.retry_delay_ms),
            history_window=pick("history_window", team.history_window),
            step_limit_factor=pick("step_limit_factor", team.step_limit_factor),
            supervisor_role=pick("supervisor_role", DEFAULT_SUPERVISOR_ROLE),
            log_prompt_max_length=pick("log_prompt_max_length", settings.observability.log_prompt_max_length),
        )


__all__ = ["EngineOptions", "TeamConfig"]
