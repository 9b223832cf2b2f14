"""Prompt templates for the decision step and leaf workers."""

from __future__ import annotations

import json
from typing import Iterable, Optional

# ========== Decision step (system side) ==========
DEFAULT_SUPERVISOR_ROLE = "Team Supervisor, responsible for coordinating agents to complete the task"

SUPERVISOR_SYSTEM_TEMPLATE = """## Your Role
{role}

## Team Members
```json
{members}
```

## Current Task
{task}

## Output Specification
1. **Termination**: If the task is finished, output: {finish_marker} followed by the final result. If responding directly to the user, **DO NOT** include any analysis process.
2. **Routing**: If the task is ongoing, output **ONLY** the name of the next Agent to execute. Do not provide extra text.

## History Analysis & Guidelines
- Reference collaboration history to avoid redundant turns.
- Task Finish Marker: {finish_marker}.
- Note: Do not terminate prematurely; ensure necessary expert input is obtained."""


# ========== Decision step (user side) ==========
SUPERVISOR_USER_TEMPLATE = """## Collaboration History
{history}

## Current Iteration
{iteration}

Please decide the next action based on the history above. Reply with the name of the next agent, or {finish_marker} followed by the final answer if the task is complete."""


# ========== Leaf worker ==========
AGENT_SYSTEM_TEMPLATE = """## Your Role
You are "{name}", a member of the "{team}" team.
{description}

Focus on your own expertise and produce a concrete contribution. Other members and a supervisor will build on your output."""

AGENT_USER_TEMPLATE = """## Task
{task}

## Team Progress
{history}"""

ESTIMATE_TEMPLATE = """You are "{name}". {description}

Write a short technical proposal (at most five sentences) describing how you would handle the task below, your expected effort and any risks.

Task: {task}"""


def build_member_directory(agents: Iterable) -> str:
    """Render the roster as the JSON block shown to the supervisor."""
    members = [{"name": agent.name, "description": getattr(agent, "description", "") or ""} for agent in agents]
    return json.dumps(members, ensure_ascii=False, indent=2)


def build_supervisor_system_prompt(
    *,
    agents: Iterable,
    task: str,
    finish_marker: str,
    instruction: str = "",
    role: Optional[str] = None,
) -> str:
    """Compose base prompt plus the protocol instruction addendum."""
    prompt = SUPERVISOR_SYSTEM_TEMPLATE.format(
        role=role or DEFAULT_SUPERVISOR_ROLE,
        members=build_member_directory(agents),
        task=task,
        finish_marker=finish_marker,
    )
    if instruction:
        prompt = f"{prompt}\n\n{instruction.strip()}"
    return prompt


def build_supervisor_user_prompt(*, context: str, history: str, iteration: int, finish_marker: str) -> str:
    prompt = SUPERVISOR_USER_TEMPLATE.format(history=history, iteration=iteration, finish_marker=finish_marker)
    if context:
        prompt = f"{context.strip()}\n\n{prompt}"
    return prompt


__all__ = [
    "AGENT_SYSTEM_TEMPLATE",
    "AGENT_USER_TEMPLATE",
    "DEFAULT_SUPERVISOR_ROLE",
    "ESTIMATE_TEMPLATE",
    "build_member_directory",
    "build_supervisor_system_prompt",
    "build_supervisor_user_prompt",
]
