"""Finish-marker helpers."""

from __future__ import annotations

import re
from typing import Optional


def default_finish_marker(team_name: str) -> str:
    """``[<TEAM>_FINISH]`` derived from the team name."""
    return f"[{team_name.upper()}_FINISH]"


def extract_final_answer(text: Optional[str], finish_marker: str) -> Optional[str]:
    """Text after the first (case-insensitive) marker occurrence, or None when absent."""
    if not text or not finish_marker:
        return None
    match = re.search(re.escape(finish_marker), text, re.IGNORECASE)
    if match is None:
        return None
    return text[match.end():].strip()


__all__ = ["default_finish_marker", "extract_final_answer"]
