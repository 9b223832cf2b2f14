"""Coordination protocols and the explicit name -> factory table."""

from __future__ import annotations

from typing import Callable, Dict, Union

from teamgraph.errors import ProtocolError

from .a2a import A2AProtocol
from .base import TeamProtocol
from .blackboard import BlackboardProtocol
from .contract_net import ContractNetProtocol
from .hierarchical import HierarchicalProtocol
from .market import MarketBasedProtocol
from .none import NoneProtocol
from .sequential import SequentialProtocol
from .swarm import SwarmProtocol

PROTOCOLS: Dict[str, Callable[..., TeamProtocol]] = {
    "sequential": SequentialProtocol,
    "hierarchical": HierarchicalProtocol,
    "contract_net": ContractNetProtocol,
    "blackboard": BlackboardProtocol,
    "swarm": SwarmProtocol,
    "market_based": MarketBasedProtocol,
    "a2a": A2AProtocol,
    "none": NoneProtocol,
}


def create_protocol(protocol: Union[str, TeamProtocol, None] = None, **kwargs) -> TeamProtocol:
    """Return a protocol instance from a name (case-insensitive) or pass one through.

    Raises:
        ProtocolError: Unknown protocol name.
    """
    if protocol is None:
        return HierarchicalProtocol()
    if isinstance(protocol, TeamProtocol):
        return protocol
    key = str(protocol).strip().lower().replace("-", "_")
    factory = PROTOCOLS.get(key)
    if factory is None:
        raise ProtocolError(
            f"Unknown protocol '{protocol}'",
            user_message=f"Unknown protocol '{protocol}'. Available: {', '.join(PROTOCOLS)}",
        )
    return factory(**kwargs)


__all__ = [
    "A2AProtocol",
    "BlackboardProtocol",
    "ContractNetProtocol",
    "HierarchicalProtocol",
    "MarketBasedProtocol",
    "NoneProtocol",
    "PROTOCOLS",
    "SequentialProtocol",
    "SwarmProtocol",
    "TeamProtocol",
    "create_protocol",
]
