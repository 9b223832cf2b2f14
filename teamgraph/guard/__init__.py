"""Termination and loop guard."""

from .termination import Termination, TerminationGuard, detect_route_loop

__all__ = ["Termination", "TerminationGuard", "detect_route_loop"]
