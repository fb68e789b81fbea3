"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping

import pytest

from app.config import Settings
from app.intents import IntentType
from app.models import Entities, HealthStatus, IntentResult, ProviderHealth, Reply
from app.services.catalog import DemoCatalog
from app.services.error_handling import ProviderError, ProviderErrorKind
from app.services.providers.base import ProviderAdapter
from app.services.rule_engine import RuleBasedEngine


class FakeClock:
    """Monotonic seconds clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWallClock:
    """UTC datetime clock for session expiry tests."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class StubAdapter(ProviderAdapter):
    """Scripted provider adapter that counts calls.

    ``outcomes`` is consumed one entry per analyze call: an ``IntentResult``
    is returned, an exception is raised. When exhausted ``default`` is used.
    """

    def __init__(
        self,
        name: str = "stub",
        *,
        outcomes: List[Any] | None = None,
        default: Any = None,
        enabled: bool = True,
        delay: float = 0.0,
        reply_text: str = "Provider reply",
    ) -> None:
        self.name = name
        self._outcomes = list(outcomes or [])
        self._default = default
        self._enabled = enabled
        self._delay = delay
        self._reply_text = reply_text
        self.analyze_calls = 0
        self.generate_calls = 0
        self.health_calls = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _next(self) -> Any:
        if self._outcomes:
            return self._outcomes.pop(0)
        if self._default is not None:
            return self._default
        return IntentResult(intent=IntentType.GREETING, confidence=0.9, source=self.name)

    async def analyze_intent(
        self,
        message: str,
        context: Mapping[str, Any] | None = None,
        *,
        deadline: float | None = None,
    ) -> IntentResult:
        self.analyze_calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        outcome = self._next()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def generate_response(
        self,
        intent_result: IntentResult,
        entities: Entities,
        context: Mapping[str, Any] | None = None,
        *,
        deadline: float | None = None,
    ) -> Reply:
        self.generate_calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        return Reply(message=self._reply_text, quick_replies=["Find products"], source=self.name)

    async def health_check(self, *, deadline: float | None = None) -> ProviderHealth:
        self.health_calls += 1
        if not self._enabled:
            return ProviderHealth(status=HealthStatus.DISABLED, reason="API key not configured")
        return ProviderHealth(status=HealthStatus.HEALTHY)


def transport_error(name: str = "stub") -> ProviderError:
    return ProviderError(ProviderErrorKind.TRANSPORT, "connection refused", provider=name)


@pytest.fixture
def settings() -> Settings:
    """Default settings for tests: no provider keys, demo catalog."""
    return Settings(
        sambanova_api_key="",
        openai_api_key="",
        catalog_base_url=None,
        langsmith_api_key=None,
        langsmith_tracing_v2=False,
    )


@pytest.fixture
def rule_engine() -> RuleBasedEngine:
    return RuleBasedEngine()


@pytest.fixture
def demo_catalog() -> DemoCatalog:
    return DemoCatalog()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wall_clock() -> FakeWallClock:
    return FakeWallClock()
