"""Agent capability protocols, leaf workers and the agent registry."""

from .chat_agent import ChatAgent, FunctionAgent, as_language_model
from .interfaces import Agent, LanguageModel
from .model import ChatModelAdapter
from .registry import AgentRegistry

__all__ = [
    "Agent",
    "AgentRegistry",
    "ChatAgent",
    "ChatModelAdapter",
    "FunctionAgent",
    "LanguageModel",
    "as_language_model",
]
