"""Error taxonomy for team orchestration.

Configuration problems surface as ``GraphError`` at build time. Model failures
are split into transient (retried) and permanent (escalated at once). Hook
failures raised by interceptors are wrapped in ``InterceptorError`` so the
engine can mark the trace before re-raising.
"""

from __future__ import annotations

from typing import Optional


class TeamGraphError(Exception):
    """Base exception for teamgraph errors."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class GraphError(TeamGraphError):
    """Invalid workflow topology (dangling edge, unreachable node, no default...)."""
    pass


class ProtocolError(TeamGraphError):
    """Unknown or misconfigured coordination protocol."""
    pass


class ModelInvocationError(TeamGraphError):
    """Model call failed after all retry attempts."""
    pass


class TransientModelError(TeamGraphError):
    """Model failure worth retrying (timeouts, rate limits, 5xx)."""
    pass


class PermanentModelError(TeamGraphError):
    """Model failure that retrying cannot fix (auth, unknown model)."""
    pass


class ParameterError(TeamGraphError, ValueError):
    """Malformed request parameters; never retried."""
    pass


class InterceptorError(TeamGraphError):
    """An interceptor hook raised; fatal for the current invocation."""

    def __init__(self, hook: str, interceptor: object, cause: BaseException):
        name = type(interceptor).__name__
        super().__init__(f"Interceptor {name}.{hook} failed: {cause}")
        self.hook = hook
        self.interceptor = interceptor
        self.cause = cause


def is_parameter_error(exc: BaseException) -> bool:
    """Return True for errors caused by the request shape rather than the service."""

    if isinstance(exc, ParameterError):
        return True
    # TypeError/ValueError from the client layer mean we built a bad request
    return isinstance(exc, (TypeError, ValueError)) and not isinstance(exc, TeamGraphError)


def is_retryable(exc: BaseException) -> bool:
    """Return True when the retry policy should attempt the call again."""

    if isinstance(exc, (PermanentModelError, InterceptorError)):
        return False
    return not is_parameter_error(exc)


__all__ = [
    "TeamGraphError",
    "GraphError",
    "ProtocolError",
    "ModelInvocationError",
    "TransientModelError",
    "PermanentModelError",
    "ParameterError",
    "InterceptorError",
    "is_parameter_error",
    "is_retryable",
]
