from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langsmith import traceable

from ...intents import intent_descriptions
from ...models import Entities, HealthStatus, IntentResult, ProviderHealth, Reply
from ...prompts.intent_prompt import build_intent_prompt
from ...prompts.response_prompt import build_health_prompt, build_response_prompt
from ..error_handling import ProviderError, ProviderErrorKind
from ..reply_templates import quick_replies_for
from .base import ProviderAdapter, parse_intent_payload, run_with_deadline

logger = logging.getLogger(__name__)


def _message_text(result: Any) -> Optional[str]:
    content = getattr(result, "content", result)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [part.get("text", "") if isinstance(part, dict) else str(part) for part in content]
        return "".join(parts)
    return None


class ChatModelProvider(ProviderAdapter):
    """Adapter over any LangChain chat model (SambaNova, OpenAI, test fakes).

    ``intent_llm`` answers the JSON classification prompt and ``response_llm``
    writes the reply; a single model may serve both. A provider built without
    a model is registered but disabled.
    """

    def __init__(
        self,
        name: str,
        intent_llm: BaseChatModel | None,
        response_llm: BaseChatModel | None = None,
        *,
        model_name: str | None = None,
        disabled_reason: str = "API key not configured",
    ) -> None:
        self.name = name
        self._intent_llm = intent_llm
        self._response_llm = response_llm or intent_llm
        self._model_name = model_name
        self._disabled_reason = disabled_reason
        self._intent_prompt = build_intent_prompt(intent_descriptions())
        self._response_prompt = build_response_prompt()
        self._health_prompt = build_health_prompt()

    @property
    def enabled(self) -> bool:
        return self._intent_llm is not None

    @property
    def model(self) -> Optional[str]:
        return self._model_name

    def _require_enabled(self) -> None:
        if not self.enabled:
            raise ProviderError(ProviderErrorKind.AUTH_FAILURE, self._disabled_reason, provider=self.name)

    @traceable(run_type="llm", name="provider_analyze_intent")
    async def analyze_intent(
        self,
        message: str,
        context: Mapping[str, Any] | None = None,
        *,
        deadline: float | None = None,
    ) -> IntentResult:
        self._require_enabled()
        messages = self._intent_prompt.format_messages(
            message=message,
            context_json=json.dumps(dict(context or {}), ensure_ascii=False, default=str),
        )
        result = await run_with_deadline(self._intent_llm.ainvoke(messages), deadline, provider=self.name)
        intent_result = parse_intent_payload(_message_text(result), provider=self.name)
        logger.debug(
            "provider=%s intent=%s confidence=%.2f",
            self.name,
            intent_result.intent.value,
            intent_result.confidence,
        )
        return intent_result

    @traceable(run_type="llm", name="provider_generate_response")
    async def generate_response(
        self,
        intent_result: IntentResult,
        entities: Entities,
        context: Mapping[str, Any] | None = None,
        *,
        deadline: float | None = None,
    ) -> Reply:
        self._require_enabled()
        context = dict(context or {})
        messages = self._response_prompt.format_messages(
            intent=intent_result.intent.value,
            entities_json=json.dumps(entities.as_dict(), ensure_ascii=False),
            context_json=json.dumps(context, ensure_ascii=False, default=str),
            message=context.get("originalMessage") or "Generate appropriate response",
        )
        result = await run_with_deadline(self._response_llm.ainvoke(messages), deadline, provider=self.name)
        text = (_message_text(result) or "").strip()
        if not text:
            raise ProviderError(ProviderErrorKind.MALFORMED_RESPONSE, "empty reply", provider=self.name)
        return Reply(message=text, quick_replies=quick_replies_for(intent_result.intent), source=self.name)

    async def health_check(self, *, deadline: float | None = None) -> ProviderHealth:
        if not self.enabled:
            return ProviderHealth(status=HealthStatus.DISABLED, reason=self._disabled_reason)
        try:
            messages = self._health_prompt.format_messages()
            await run_with_deadline(self._response_llm.ainvoke(messages), deadline, provider=self.name)
        except ProviderError as exc:
            logger.warning("Health check failed provider=%s kind=%s", self.name, exc.kind.value)
            return ProviderHealth(status=HealthStatus.ERROR, reason=str(exc), model=self._model_name)
        return ProviderHealth(status=HealthStatus.HEALTHY, model=self._model_name)
