from __future__ import annotations

import logging
from typing import Callable, Dict, List

from langchain_openai import ChatOpenAI

from ...config import Settings
from .base import ProviderAdapter
from .langchain_provider import ChatModelProvider

logger = logging.getLogger(__name__)


def _chat_openai(
    settings: Settings,
    *,
    api_key: str,
    base_url: str | None,
    model: str,
    temperature: float,
    max_tokens: int,
) -> ChatOpenAI:
    return ChatOpenAI(
        model=model,
        api_key=api_key,
        base_url=base_url,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=settings.provider_timeout_seconds,
        max_retries=0,
    )


def _build_openai_compatible(
    name: str,
    settings: Settings,
    *,
    api_key: str,
    base_url: str | None,
    model: str,
) -> ChatModelProvider:
    if not api_key:
        logger.warning("%s API key not found. Provider registered as disabled.", name)
        return ChatModelProvider(name, None, model_name=model)
    intent_llm = _chat_openai(
        settings,
        api_key=api_key,
        base_url=base_url,
        model=model,
        temperature=settings.intent_temperature,
        max_tokens=settings.intent_max_tokens,
    )
    response_llm = _chat_openai(
        settings,
        api_key=api_key,
        base_url=base_url,
        model=model,
        temperature=settings.response_temperature,
        max_tokens=settings.response_max_tokens,
    )
    logger.info("%s provider enabled model=%s", name, model)
    return ChatModelProvider(name, intent_llm, response_llm, model_name=model)


def build_sambanova(settings: Settings) -> ProviderAdapter:
    return _build_openai_compatible(
        "sambanova",
        settings,
        api_key=settings.sambanova_api_key,
        base_url=settings.sambanova_base_url,
        model=settings.sambanova_model,
    )


def build_openai(settings: Settings) -> ProviderAdapter:
    return _build_openai_compatible(
        "openai",
        settings,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
    )


PROVIDER_FACTORIES: Dict[str, Callable[[Settings], ProviderAdapter]] = {
    "sambanova": build_sambanova,
    "openai": build_openai,
}


def build_adapters(settings: Settings) -> List[ProviderAdapter]:
    """Adapters in the configured priority order; unknown names are skipped."""
    adapters: List[ProviderAdapter] = []
    for name in settings.provider_priority_list:
        factory = PROVIDER_FACTORIES.get(name)
        if factory is None:
            logger.warning("Unknown provider in PROVIDER_PRIORITY: %s", name)
            continue
        adapters.append(factory(settings))
    return adapters
