"""Market-based assignment: the decision is framed as a cost/value trade-off."""

from __future__ import annotations

from teamgraph.protocols.base import dump_json
from teamgraph.protocols.hierarchical import HierarchicalProtocol
from teamgraph.trace import TeamTrace

KEY_MARKET = "market_state"


def assess_quality(content: str) -> float:
    if not content:
        return 0.1
    if len(content) > 500 and "```" in content:
        return 0.9
    if len(content) > 100:
        return 0.7
    return 0.4


class MarketBasedProtocol(HierarchicalProtocol):
    name = "MARKET_BASED"

    def prepare_instruction(self, trace: TeamTrace) -> str:
        return (
            f"## Protocol: {self.name}\n"
            "Treat every assignment as a purchase: weigh expected quality against cost and pick the best value.\n\n"
            "## Market Procurement Principles\n"
            "- **Budget Control**: For simple tasks, assign agents with lower `price`.\n"
            "- **Critical Tasks**: For core logic, assign agents with the highest `score` and `roi`."
        )

    def prepare_context(self, trace: TeamTrace) -> str:
        market = trace.get_scratch(KEY_MARKET, {})
        listing = {}
        for name in self.agent_names(trace):
            profile = market.get(name, _new_profile())
            listing[name] = {
                "score": round(profile["quality"], 2),
                "price": round(profile["price"], 2),
                "roi": round(profile["quality"] * profile["efficiency"] / profile["price"], 2),
                "deals": profile["deals"],
            }
        return (
            "### Marketplace\n"
            f"```json\n{dump_json(listing)}\n```\n"
            "> Hint: Higher ROI indicates better value for money."
        )

    def on_agent_end(self, trace: TeamTrace, agent_name: str, output: str) -> None:
        steps = trace.current_turn_steps()
        duration_ms = steps[-1].duration_ms if steps and steps[-1].source == agent_name else 0
        quality = assess_quality(output)
        efficiency = max(0.1, 1.0 - duration_ms / 60000.0)

        market = trace.setdefault_scratch(KEY_MARKET, {})
        profile = market.setdefault(agent_name, _new_profile())
        profile["deals"] += 1
        profile["quality"] = profile["quality"] * 0.7 + quality * 0.3
        profile["efficiency"] = profile["efficiency"] * 0.7 + efficiency * 0.3
        profile["price"] = 1.0 + profile["deals"] * 0.1 + profile["quality"] * 0.5

    def on_team_finished(self, trace: TeamTrace) -> None:
        trace.pop_scratch(KEY_MARKET)
        super().on_team_finished(trace)


def _new_profile() -> dict:
    return {"quality": 0.8, "efficiency": 0.7, "deals": 0, "price": 1.0}


__all__ = ["MarketBasedProtocol", "assess_quality"]
