"""Shared helpers."""

from .logging_utils import (
    log_decision_prompt,
    log_error,
    log_model_retry,
    log_routing_decision,
    log_trace_summary,
    setup_logging,
    truncate,
)

__all__ = [
    "log_decision_prompt",
    "log_error",
    "log_model_retry",
    "log_routing_decision",
    "log_trace_summary",
    "setup_logging",
    "truncate",
]
