"""Immutable name -> Agent registry built once per engine."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping, Optional

from teamgraph.constants import RESERVED_NAMES
from teamgraph.errors import GraphError

LOGGER = logging.getLogger(__name__)


class AgentRegistry(Mapping):
    """Read-only mapping of agent name to agent, in registration order."""

    def __init__(self, agents: Iterable = ()) -> None:
        entries = {}
        for agent in agents:
            name = getattr(agent, "name", None)
            if not isinstance(name, str) or not name.strip():
                raise GraphError(f"Agent has no usable name: {agent!r}")
            if name.lower() in RESERVED_NAMES:
                raise GraphError(f"Agent name '{name}' is reserved")
            if name in entries:
                raise GraphError(f"Duplicate agent name: {name}")
            for method in ("invoke", "estimate"):
                if not callable(getattr(agent, method, None)):
                    raise GraphError(f"Agent '{name}' does not implement {method}()")
            entries[name] = agent
        self._agents = MappingProxyType(entries)
        LOGGER.debug(f"Registered agents: {list(entries)}")

    @classmethod
    def of(cls, agents) -> "AgentRegistry":
        if isinstance(agents, AgentRegistry):
            return agents
        if isinstance(agents, Mapping):
            return cls(agents.values())
        return cls(agents)

    def __getitem__(self, name: str):
        return self._agents[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    @property
    def names(self) -> List[str]:
        return list(self._agents)

    def find(self, name: str) -> Optional[object]:
        return self._agents.get(name)

    def __repr__(self) -> str:
        return f"AgentRegistry({self.names})"


__all__ = ["AgentRegistry"]
