"""Generic parsing of free-text supervisor decisions into a route.

Order: finish marker, then whole-word agent names (longest first), then the
same scan over text with punctuation collapsed to spaces. Anything left over
routes to END so an unparseable decision can never loop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from teamgraph.constants import ID_END
from teamgraph.markers import extract_final_answer

_NON_ALNUM = re.compile(r"[\W_]+")

DEFAULT_FINAL_ANSWER = "Task completed."


@dataclass(frozen=True)
class ParsedDecision:
    route: str
    final_answer: Optional[str] = None
    diagnostic: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.route == ID_END


def _word_pattern(name: str) -> re.Pattern:
    # Alphanumeric characters may not touch either end of the name
    return re.compile(rf"(?<![^\W_]){re.escape(name)}(?![^\W_])", re.IGNORECASE)


def match_agent(text: str, names: Iterable[str]) -> Optional[str]:
    """Longest-name-first whole-word scan; returns the canonical agent name."""
    for name in sorted(names, key=len, reverse=True):
        if name and _word_pattern(name).search(text):
            return name
    return None


def match_agent_fuzzy(text: str, names: Iterable[str]) -> Optional[str]:
    """Same scan with every non-alphanumeric run collapsed to a single space."""
    collapsed_text = _NON_ALNUM.sub(" ", text)
    collapsed = {}
    for name in names:
        key = _NON_ALNUM.sub(" ", name).strip()
        if key:
            collapsed.setdefault(key, name)
    matched = match_agent(collapsed_text, collapsed)
    return collapsed[matched] if matched else None


def parse_decision(
    decision: Optional[str],
    agent_names: Iterable[str],
    finish_marker: str,
    fallback_answer: str = "",
) -> ParsedDecision:
    text = (decision or "").strip()
    if not text:
        return ParsedDecision(ID_END, diagnostic="Empty decision, terminating.")

    answer = extract_final_answer(text, finish_marker)
    if answer is not None:
        return ParsedDecision(ID_END, final_answer=answer or fallback_answer or DEFAULT_FINAL_ANSWER)

    names = list(agent_names)
    name = match_agent(text, names) or match_agent_fuzzy(text, names)
    if name:
        return ParsedDecision(name)

    return ParsedDecision(ID_END, diagnostic=f"Unmatched decision, terminating: {text[:200]}")


__all__ = [
    "DEFAULT_FINAL_ANSWER",
    "ParsedDecision",
    "match_agent",
    "match_agent_fuzzy",
    "parse_decision",
]
