"""Coordination protocol strategy interface and shared helpers.

Protocol objects are stateless and shared by every trace of an engine. All
per-run bookkeeping lives in ``trace.scratch``; the team roster and settings
are read from ``trace.config``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from teamgraph.constants import ID_END, ID_START, ID_SUPERVISOR
from teamgraph.graph.builder import GraphSpec
from teamgraph.graph.model import route_is
from teamgraph.tasks.supervisor import SupervisorTask
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)

_MARKDOWN_NOISE = re.compile(r"[*_`]")


class TeamProtocol:
    """Base strategy. Subclasses override the hooks they care about."""

    name = "BASE"

    # ========== Topology ==========

    def build_graph(self, spec: GraphSpec, agents: Mapping[str, Any]) -> None:
        """Declare the default topology: supervisor hub with a spoke per agent."""
        spec.add_start(ID_START).link_add(ID_SUPERVISOR)
        self.add_supervisor_hub(spec, agents)
        for name in agents:
            spec.add_activity(name).link_add(ID_SUPERVISOR)
        spec.add_end(ID_END)

    def add_supervisor_hub(self, spec: GraphSpec, agents: Mapping[str, Any], extra_routes: List[str] = ()) -> None:
        """Exclusive supervisor node: one guarded edge per route, default to END."""
        hub = spec.add_exclusive(ID_SUPERVISOR)
        for target in list(extra_routes) + list(agents):
            hub.link_add(target, route_is(target), label=f"route = {target}")
        hub.link_add(ID_END)

    def components(self, config) -> Dict[str, Any]:
        """Task components bound to graph nodes by name at compile time."""
        return {ID_SUPERVISOR: SupervisorTask(config)}

    # ========== Decision-cycle hooks ==========

    def should_run(self, trace: TeamTrace) -> bool:
        return True

    def prepare_instruction(self, trace: TeamTrace) -> str:
        candidates = ", ".join(self.agent_names(trace))
        return (
            f"## Protocol: {self.name}\n"
            f"- Candidates: [{candidates}]\n"
            f"- Requirement: Output {trace.config.finish_marker} when finished."
        )

    def prepare_context(self, trace: TeamTrace) -> str:
        return ""

    def history_window(self, trace: TeamTrace) -> int:
        return trace.config.history_window

    def resolve_route(self, trace: TeamTrace, decision: str) -> Optional[str]:
        """Exact-ID shortcut after stripping Markdown emphasis; None defers to generic parsing."""
        clean = _MARKDOWN_NOISE.sub("", decision or "").strip()
        if clean in trace.config.agents:
            return clean
        return None

    def accepts_route(self, trace: TeamTrace, decision: str, route: str) -> bool:
        return True

    def on_routed(self, trace: TeamTrace, target: str) -> None:
        pass

    # ========== Lifecycle hooks ==========

    def on_agent_end(self, trace: TeamTrace, agent_name: str, output: str) -> None:
        pass

    def on_team_finished(self, trace: TeamTrace) -> None:
        pass

    # ========== Helpers ==========

    @staticmethod
    def agent_names(trace: TeamTrace) -> List[str]:
        return list(trace.config.agents)

    @staticmethod
    def bump_counter(trace: TeamTrace, key: str, name: str) -> int:
        counters = trace.setdefault_scratch(key, {})
        counters[name] = counters.get(name, 0) + 1
        return counters[name]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def sniff_json(content: Optional[str]) -> Optional[Any]:
    """Return the first ``{...}`` block of ``content`` parsed as JSON, or None."""
    if not content:
        return None
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(content[start:end + 1])
    except ValueError:
        LOGGER.debug("sniff_json: invalid JSON block ignored")
        return None


def dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2, sort_keys=False)


__all__ = ["TeamProtocol", "dump_json", "sniff_json"]
