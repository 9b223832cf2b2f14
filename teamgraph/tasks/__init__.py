"""Task components bound to graph nodes: decision step and bidding."""

from .base import TaskComponent
from .bidding import BiddingTask
from .decision_parser import ParsedDecision, parse_decision
from .supervisor import SupervisorTask

__all__ = ["BiddingTask", "ParsedDecision", "SupervisorTask", "TaskComponent", "parse_decision"]
