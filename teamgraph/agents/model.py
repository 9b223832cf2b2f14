"""Adapter exposing a LangChain chat model as a ``LanguageModel``."""

from __future__ import annotations

import logging
from typing import List

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from teamgraph.agents.interfaces import PriorMessages
from teamgraph.errors import ParameterError

LOGGER = logging.getLogger(__name__)

_ROLE_TO_MESSAGE = {
    "user": HumanMessage,
    "human": HumanMessage,
    "assistant": AIMessage,
    "ai": AIMessage,
    "system": SystemMessage,
}


def to_messages(system_prompt: str, user_prompt: str, prior_messages: PriorMessages = ()) -> List[BaseMessage]:
    """Build the LangChain message list for one completion."""
    messages: List[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    for role, content in prior_messages:
        message_cls = _ROLE_TO_MESSAGE.get(role)
        if message_cls is None:
            raise ParameterError(f"Unknown message role: {role!r}")
        messages.append(message_cls(content=content))
    messages.append(HumanMessage(content=user_prompt))
    return messages


def message_text(message) -> str:
    """Extract plain text from a chat model response."""
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict):
                parts.append(str(part.get("text", "")))
            else:
                parts.append(str(part))
        return "".join(parts)
    return "" if content is None else str(content)


class ChatModelAdapter:
    """Wrap a ``BaseChatModel`` (ChatOpenAI, FakeListChatModel, ...) as a ``LanguageModel``."""

    def __init__(self, chat_model: BaseChatModel) -> None:
        self.chat_model = chat_model

    def complete(self, system_prompt: str, user_prompt: str, prior_messages: PriorMessages = ()) -> str:
        messages = to_messages(system_prompt, user_prompt, prior_messages)
        LOGGER.debug(f"Invoking {type(self.chat_model).__name__} with {len(messages)} messages")
        response = self.chat_model.invoke(messages)
        return message_text(response)

    def __repr__(self) -> str:
        return f"ChatModelAdapter({type(self.chat_model).__name__})"


__all__ = ["ChatModelAdapter", "message_text", "to_messages"]
