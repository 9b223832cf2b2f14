"""Termination checks run before every decision cycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from teamgraph.markers import extract_final_answer
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Termination:
    reason: str
    final_answer: Optional[str] = None


def detect_route_loop(history: Sequence[str], min_cycle: int = 2, min_repeats: int = 2) -> Optional[List[str]]:
    """Return the repeating cycle at the tail of ``history``, or None.

    A loop is a block of at least ``min_cycle`` routes that occurs at least
    ``min_repeats`` times back to back at the end of the history.
    """
    size = len(history)
    for cycle in range(min_cycle, size // min_repeats + 1):
        block = list(history[-cycle:])
        window = history[-cycle * min_repeats:]
        if all(list(window[i:i + cycle]) == block for i in range(0, len(window), cycle)):
            return block
    return None


class TerminationGuard:
    """Checks, in order: iteration cap, route loop, final answer set, marker seen in a step."""

    def __init__(self, min_cycle: int = 2, min_repeats: int = 2) -> None:
        self.min_cycle = min_cycle
        self.min_repeats = min_repeats

    def check(self, trace: TeamTrace, finish_marker: str) -> Optional[Termination]:
        if trace.iteration_count >= trace.max_iterations:
            return Termination(f"Maximum iterations reached ({trace.max_iterations}), terminating.")

        cycle = detect_route_loop(trace.route_history, self.min_cycle, self.min_repeats)
        if cycle:
            return Termination(f"Routing loop detected ({' -> '.join(cycle)} repeated), terminating.")

        if trace.final_answer is not None:
            return Termination("Final answer already set, terminating.")

        for step in trace.current_turn_steps():
            answer = extract_final_answer(step.content, finish_marker)
            if answer is not None:
                LOGGER.info(f"Finish marker found in output of '{step.source}'")
                return Termination(
                    f"Finish marker emitted by '{step.source}', terminating.",
                    final_answer=answer or None,
                )
        return None


__all__ = ["Termination", "TerminationGuard", "detect_route_loop"]
