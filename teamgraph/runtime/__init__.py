"""Engine assembly, nested teams and default model wiring."""

from .engine import GraphAdjuster, TeamEngine, build
from .model_resolver import build_model_resolver, resolve_supervisor_model
from .options import EngineOptions, TeamConfig
from .team_agent import TeamAgent

__all__ = [
    "EngineOptions",
    "GraphAdjuster",
    "TeamAgent",
    "TeamConfig",
    "TeamEngine",
    "build",
    "build_model_resolver",
    "resolve_supervisor_model",
]
