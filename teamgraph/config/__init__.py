"""Configuration exports."""

from .settings import (
    ModelSettings,
    ObservabilitySettings,
    Settings,
    TeamSettings,
    get_settings,
)

__all__ = ["ModelSettings", "ObservabilitySettings", "Settings", "TeamSettings", "get_settings"]
