"""Capability protocols consumed by the engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, Tuple, runtime_checkable

if TYPE_CHECKING:
    from teamgraph.trace import TeamTrace

# (role, content) pairs, role in {"user", "assistant", "system"}
PriorMessages = Sequence[Tuple[str, str]]


@runtime_checkable
class Agent(Protocol):
    """A named unit of work: a leaf worker or a nested team."""

    name: str
    description: str

    def invoke(self, task: str, trace: "TeamTrace") -> str:
        ...

    def estimate(self, task: str) -> str:
        ...


@runtime_checkable
class LanguageModel(Protocol):
    """Synchronous text completion used by the decision step."""

    def complete(self, system_prompt: str, user_prompt: str, prior_messages: PriorMessages = ()) -> str:
        ...


__all__ = ["Agent", "LanguageModel", "PriorMessages"]
