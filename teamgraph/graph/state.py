"""Shared state definition for the LangGraph flow."""

from __future__ import annotations

from typing import TypedDict

from teamgraph.trace import TeamTrace


class TeamState(TypedDict, total=False):
    """State carried between LangGraph nodes.

    The trace object is the single source of truth; nodes mutate it in place
    and hand it back so LangGraph sees the update.
    """

    # ========== Execution trace ==========
    team_trace: TeamTrace

    # ========== Invocation input ==========
    team_task: str


# Node names must not shadow state channels
STATE_KEYS = frozenset(TeamState.__annotations__)

__all__ = ["TeamState", "STATE_KEYS"]
