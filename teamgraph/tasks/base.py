"""Base class for built-in task components bound to graph nodes."""

from __future__ import annotations

from abc import ABC, abstractmethod

from teamgraph.trace import TeamTrace


class TaskComponent(ABC):
    """A non-agent unit of work the executor runs at a node (decision step, bidding)."""

    name: str = ""

    @abstractmethod
    def run(self, trace: TeamTrace) -> None:
        """Do the node's work, mutating ``trace`` in place."""
