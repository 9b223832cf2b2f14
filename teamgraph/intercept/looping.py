"""Content-based loop breaker.

Complements the route-based loop guard: stops the team when an agent keeps
repeating itself, or when the last two/three agent outputs repeat the ones
before them with near-identical content.
"""

from __future__ import annotations

import logging
import re
from typing import List

from teamgraph.intercept.base import TeamInterceptor
from teamgraph.trace import TeamStep, TeamTrace

LOGGER = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with a single rolling row."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def similarity(first: str, second: str) -> float:
    """1 - distance / max_length over whitespace-free, lowercased text."""
    if first == second:
        return 1.0
    a = _WHITESPACE.sub("", first or "").lower()
    b = _WHITESPACE.sub("", second or "").lower()
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return 1.0 - edit_distance(a, b) / longest


class LoopingTeamInterceptor(TeamInterceptor):
    def __init__(
        self,
        similarity_threshold: float = 0.95,
        min_content_length: int = 10,
        scan_window: int = 10,
        max_repeat_allowed: int = 0,
    ) -> None:
        self.similarity_threshold = similarity_threshold
        self.min_content_length = min_content_length
        self.scan_window = scan_window
        self.max_repeat_allowed = max_repeat_allowed

    def should_continue(self, trace: TeamTrace) -> bool:
        if self.is_looping(trace):
            LOGGER.warning(f"Team [{trace.team_name}] output loop detected, stopping")
            return False
        return True

    def is_looping(self, trace: TeamTrace) -> bool:
        steps = trace.current_turn_steps()
        if len(steps) < 4:
            return False
        last = steps[-1]
        if not last.content or len(last.content) < self.min_content_length:
            return False
        return self._self_loop(steps) or self._sequence_loop(steps)

    def _self_loop(self, steps: List[TeamStep]) -> bool:
        last = steps[-1]
        repeats = 0
        lower = max(0, len(steps) - 1 - self.scan_window)
        for previous in reversed(steps[lower:-1]):
            if previous.source != last.source:
                continue
            if similarity(previous.content, last.content) < self.similarity_threshold:
                break
            repeats += 1
            if repeats > self.max_repeat_allowed:
                return True
        return False

    def _sequence_loop(self, steps: List[TeamStep]) -> bool:
        # Supervisor steps sit between agent outputs; compare agent outputs only
        steps = [step for step in steps if step.is_agent]
        size = len(steps)
        for length in (2, 3):
            if size < length * 2:
                continue
            if all(
                steps[size - 1 - i].source == steps[size - 1 - i - length].source
                and similarity(steps[size - 1 - i].content, steps[size - 1 - i - length].content)
                >= self.similarity_threshold
                for i in range(length)
            ):
                return True
        return False


__all__ = ["LoopingTeamInterceptor", "edit_distance", "similarity"]
