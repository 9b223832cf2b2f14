"""Contract-net bidding activity: collect an ``estimate()`` from every member."""

from __future__ import annotations

import logging

from teamgraph.constants import ID_BIDDING, ID_SUPERVISOR
from teamgraph.tasks.base import TaskComponent
from teamgraph.trace import TeamTrace
from teamgraph.utils.logging_utils import truncate

LOGGER = logging.getLogger(__name__)

KEY_BIDS = "contract_bids"
KEY_BIDDING_ROUND = "bidding_round"


class BiddingTask(TaskComponent):
    """Fans the current task out to every agent's ``estimate`` and stores the bids.

    A failing estimate is recorded as a failed bid instead of aborting the round.
    """

    name = ID_BIDDING

    def __init__(self, config) -> None:
        self.config = config

    def run(self, trace: TeamTrace) -> None:
        if trace.cancelled:
            return

        round_no = trace.get_scratch(KEY_BIDDING_ROUND, 0) + 1
        trace.set_scratch(KEY_BIDDING_ROUND, round_no)
        LOGGER.info(f"[{self.config.name}] Bidding round {round_no} started")

        bids = []
        for name, agent in self.config.agents.items():
            bid = {"agent": name, "description": getattr(agent, "description", "") or "", "failed": False}
            try:
                bid["proposal"] = str(agent.estimate(trace.task))
            except Exception as exc:
                LOGGER.warning(f"Agent [{name}] failed to provide a bid: {exc}")
                bid["failed"] = True
                bid["proposal"] = f"{type(exc).__name__}: {exc}"
            else:
                LOGGER.debug(f"Bid from [{name}]: {truncate(bid['proposal'], 120)}")
            bids.append(bid)

        trace.set_scratch(KEY_BIDS, bids)
        collected = sum(1 for bid in bids if not bid["failed"])
        trace.add_step(ID_BIDDING, f"Bidding completed. {collected} proposals collected.")
        trace.route = ID_SUPERVISOR
        LOGGER.info(f"[{self.config.name}] Bidding round {round_no} finished. Total bids: {collected}/{len(bids)}")


__all__ = ["BiddingTask", "KEY_BIDS", "KEY_BIDDING_ROUND"]
