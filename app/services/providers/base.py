"""
Provider adapter contract.

Every remote understanding service is wrapped by one adapter exposing
``analyze_intent``, ``generate_response`` and ``health_check``. Adapters fail
only with ``ProviderError``; the provider chain decides what happens next.
"""

from __future__ import annotations

import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Mapping, Optional, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ...intents import IntentType, parse_intent
from ...models import Entities, IntentResult, ProviderHealth, Reply
from ..error_handling import ProviderError, ProviderErrorKind

T = TypeVar("T")

_CODE_FENCE = re.compile(r"^\s*```(?:json|JSON)?\s*(?P<body>.*?)\s*```\s*$", re.DOTALL)


class IntentPayload(BaseModel):
    """Shape a provider must return for an intent analysis."""

    model_config = ConfigDict(extra="ignore")

    intent: IntentType
    confidence: float = Field(strict=True, ge=0.0, le=1.0, allow_inf_nan=False)
    entities: Entities = Field(default_factory=Entities)

    @field_validator("intent", mode="before")
    @classmethod
    def _intent_name(cls, value: Any) -> IntentType:
        return parse_intent(value)

    @field_validator("entities", mode="before")
    @classmethod
    def _null_entities(cls, value: Any) -> Any:
        return {} if value is None else value


def strip_code_fences(raw: str) -> str:
    match = _CODE_FENCE.match(raw)
    return match.group("body") if match else raw.strip()


def parse_intent_payload(raw: Any, *, provider: str) -> IntentResult:
    """Validate raw model output into an ``IntentResult`` or raise MALFORMED_RESPONSE."""

    if not isinstance(raw, str) or not raw.strip():
        raise ProviderError(
            ProviderErrorKind.MALFORMED_RESPONSE,
            "empty or non-text model output",
            provider=provider,
        )
    text = strip_code_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProviderError(
            ProviderErrorKind.MALFORMED_RESPONSE,
            f"output is not JSON: {exc.msg}",
            provider=provider,
            debug={"raw": text[:200]},
        ) from exc
    if not isinstance(data, dict):
        raise ProviderError(
            ProviderErrorKind.MALFORMED_RESPONSE,
            f"expected a JSON object, got {type(data).__name__}",
            provider=provider,
        )
    try:
        payload = IntentPayload.model_validate(data)
    except PydanticValidationError as exc:
        raise ProviderError(
            ProviderErrorKind.MALFORMED_RESPONSE,
            f"schema violation: {exc.error_count()} error(s)",
            provider=provider,
            debug={"errors": exc.errors(include_url=False, include_input=False)},
        ) from exc
    return IntentResult(
        intent=payload.intent,
        confidence=payload.confidence,
        entities=payload.entities,
        source=provider,
    )


def classify_exception(exc: BaseException, *, provider: str) -> ProviderError:
    """Map an arbitrary client exception onto a ``ProviderError`` kind."""

    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return ProviderError(ProviderErrorKind.TIMEOUT, "provider call timed out", provider=provider)

    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        response = getattr(exc, "response", None)
        status_code = getattr(response, "status_code", None)
    if status_code in (401, 403):
        return ProviderError(
            ProviderErrorKind.AUTH_FAILURE,
            f"provider rejected credentials ({status_code})",
            provider=provider,
        )
    if "timeout" in type(exc).__name__.lower():
        return ProviderError(ProviderErrorKind.TIMEOUT, str(exc) or "provider call timed out", provider=provider)
    return ProviderError(
        ProviderErrorKind.TRANSPORT,
        f"{type(exc).__name__}: {exc}",
        provider=provider,
        debug={"status_code": status_code} if status_code else None,
    )


async def run_with_deadline(awaitable: Awaitable[T], deadline: Optional[float], *, provider: str) -> T:
    """Await ``awaitable`` cancelling it once ``deadline`` seconds have passed."""

    try:
        if deadline is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=deadline)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise classify_exception(exc, provider=provider) from exc


class ProviderAdapter(ABC):
    """Uniform capability interface over one remote understanding service."""

    name: str

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """False when the provider is not configured and must be skipped."""

    @property
    def model(self) -> Optional[str]:
        return None

    @abstractmethod
    async def analyze_intent(
        self,
        message: str,
        context: Mapping[str, Any] | None = None,
        *,
        deadline: float | None = None,
    ) -> IntentResult:
        ...

    @abstractmethod
    async def generate_response(
        self,
        intent_result: IntentResult,
        entities: Entities,
        context: Mapping[str, Any] | None = None,
        *,
        deadline: float | None = None,
    ) -> Reply:
        ...

    @abstractmethod
    async def health_check(self, *, deadline: float | None = None) -> ProviderHealth:
        """Minimal round trip; never raises and never touches breaker state."""
