"""Leaf workers: a single-call chat agent and a plain-function agent."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from langchain_core.language_models import BaseChatModel

from teamgraph.agents.interfaces import LanguageModel
from teamgraph.agents.model import ChatModelAdapter
from teamgraph.prompts import AGENT_SYSTEM_TEMPLATE, AGENT_USER_TEMPLATE, ESTIMATE_TEMPLATE
from teamgraph.trace import TeamTrace

LOGGER = logging.getLogger(__name__)


def as_language_model(model: Union[LanguageModel, BaseChatModel]) -> LanguageModel:
    """Accept either a ``LanguageModel`` or a LangChain chat model."""
    if isinstance(model, BaseChatModel):
        return ChatModelAdapter(model)
    if not hasattr(model, "complete"):
        raise TypeError(f"Unsupported model object: {type(model).__name__}")
    return model


class ChatAgent:
    """Worker that answers with one model call over the task and team history."""

    def __init__(
        self,
        name: str,
        description: str,
        model: Union[LanguageModel, BaseChatModel],
        *,
        system_prompt: Optional[str] = None,
        history_window: int = 5,
    ) -> None:
        self.name = name
        self.description = description
        self.model = as_language_model(model)
        self.system_prompt = system_prompt
        self.history_window = history_window

    def invoke(self, task: str, trace: TeamTrace) -> str:
        system_prompt = self.system_prompt or AGENT_SYSTEM_TEMPLATE.format(
            name=self.name,
            team=trace.team_name,
            description=self.description,
        )
        user_prompt = AGENT_USER_TEMPLATE.format(
            task=task,
            history=trace.formatted_history(window=self.history_window),
        )
        LOGGER.debug(f"Agent '{self.name}' invoking model ({len(user_prompt)} chars)")
        return self.model.complete(system_prompt, user_prompt)

    def estimate(self, task: str) -> str:
        prompt = ESTIMATE_TEMPLATE.format(name=self.name, description=self.description, task=task)
        return self.model.complete("", prompt)

    def __repr__(self) -> str:
        return f"ChatAgent({self.name!r})"


class FunctionAgent:
    """Agent backed by plain callables; handy for deterministic steps and tests."""

    def __init__(
        self,
        name: str,
        handler: Callable[[str, TeamTrace], str],
        description: str = "",
        estimator: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.name = name
        self.description = description
        self._handler = handler
        self._estimator = estimator

    def invoke(self, task: str, trace: TeamTrace) -> str:
        return self._handler(task, trace)

    def estimate(self, task: str) -> str:
        if self._estimator is None:
            return f"{self.name}: {self.description or 'no proposal'}"
        return self._estimator(task)

    def __repr__(self) -> str:
        return f"FunctionAgent({self.name!r})"


__all__ = ["ChatAgent", "FunctionAgent", "as_language_model"]
