"""Default supervisor model wiring using environment-derived settings."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from langchain_openai import ChatOpenAI

from teamgraph.agents.model import ChatModelAdapter
from teamgraph.config import ModelSettings, Settings, get_settings
from teamgraph.errors import TeamGraphError

LOGGER = logging.getLogger(__name__)

ModelResolver = Callable[[str], ChatOpenAI]


def _chat_kwargs(models: ModelSettings, model_id: Optional[str] = None) -> Dict[str, object]:
    model = model_id or models.model_id
    if not models.api_key:
        raise TeamGraphError(
            f"Missing API key for model {model}",
            user_message=f"Missing API key for model {model}; set MODEL_API_KEY in .env.",
        )
    kwargs: Dict[str, object] = {
        "model": model,
        "api_key": models.api_key,
        "temperature": models.temperature,
        "timeout": models.timeout,
    }
    if models.base_url:
        kwargs["base_url"] = models.base_url
    return kwargs


def build_model_resolver(settings: Optional[Settings] = None) -> ModelResolver:
    """Return a resolver creating ChatOpenAI-compatible clients by model id."""

    models = (settings or get_settings()).models

    def resolver(model_id: str) -> ChatOpenAI:
        return ChatOpenAI(**_chat_kwargs(models, model_id))

    return resolver


def resolve_supervisor_model(settings: Optional[Settings] = None) -> ChatModelAdapter:
    """Build the default supervisor ``LanguageModel`` from ``MODEL_*`` settings."""
    settings = settings or get_settings()
    LOGGER.info(f"Resolving supervisor model '{settings.models.model_id}'")
    return ChatModelAdapter(build_model_resolver(settings)(settings.models.model_id))


__all__ = ["ModelResolver", "build_model_resolver", "resolve_supervisor_model"]
