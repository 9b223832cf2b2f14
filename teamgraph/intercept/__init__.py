"""Interceptor chain and shipped interceptors."""

from .approval import ApprovalChecker, ApprovalDecision, ApprovalRequest, HumanApprovalInterceptor
from .audit import AuditInterceptor
from .base import InterceptorChain, TeamInterceptor
from .looping import LoopingTeamInterceptor

__all__ = [
    "ApprovalChecker",
    "ApprovalDecision",
    "ApprovalRequest",
    "AuditInterceptor",
    "HumanApprovalInterceptor",
    "InterceptorChain",
    "LoopingTeamInterceptor",
    "TeamInterceptor",
]
