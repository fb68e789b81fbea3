"""
ProviderChain - ordered provider adapters with circuit breaking and a rule fallback.

For every call the adapters are tried in priority order. Disabled adapters and
adapters whose breaker is open are skipped; each remaining adapter gets its own
deadline. A failure, or an intent below the confidence floor, is recorded
against the adapter's breaker and the next adapter is tried. When nothing is
accepted the rule-based engine answers, so both operations always complete.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from langsmith import traceable

from ..models import Entities, HealthStatus, IntentResult, ProviderHealth, ProviderStatusReport, Reply
from .circuit_breaker import BreakerState, CircuitBreaker
from .error_handling import NotFoundError, ProviderError
from .metrics import MetricsService
from .providers.base import ProviderAdapter, run_with_deadline
from .rule_engine import RuleBasedEngine

logger = logging.getLogger(__name__)

LOW_CONFIDENCE = "low_confidence"


@dataclass
class _Registration:
    adapter: ProviderAdapter
    breaker: CircuitBreaker
    last_health: Optional[ProviderHealth] = None
    last_checked_at: Optional[datetime] = None


class ProviderChain:
    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        rule_engine: RuleBasedEngine,
        *,
        confidence_floor: float = 0.6,
        call_timeout: float = 3.0,
        failure_threshold: int = 3,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        metrics: MetricsService | None = None,
    ) -> None:
        self._registrations: List[_Registration] = []
        self._by_name: Dict[str, _Registration] = {}
        for adapter in adapters:
            if adapter.name in self._by_name:
                raise ValueError(f"Duplicate provider adapter name: {adapter.name}")
            registration = _Registration(
                adapter=adapter,
                breaker=CircuitBreaker(
                    adapter.name,
                    failure_threshold=failure_threshold,
                    cooldown_seconds=cooldown_seconds,
                    clock=clock,
                ),
            )
            self._registrations.append(registration)
            self._by_name[adapter.name] = registration
        self._rule_engine = rule_engine
        self._confidence_floor = confidence_floor
        self._call_timeout = call_timeout
        self._metrics = metrics
        logger.info(
            "Provider chain ready: %s -> rule-based",
            " -> ".join(
                f"{reg.adapter.name}{'' if reg.adapter.enabled else '(disabled)'}" for reg in self._registrations
            )
            or "(no providers)",
        )

    @property
    def names(self) -> List[str]:
        return [reg.adapter.name for reg in self._registrations]

    @property
    def rule_engine(self) -> RuleBasedEngine:
        return self._rule_engine

    def breaker(self, name: str) -> CircuitBreaker:
        return self._get(name).breaker

    def _get(self, name: str) -> _Registration:
        registration = self._by_name.get((name or "").lower()) or self._by_name.get(name)
        if registration is None:
            raise NotFoundError(f"Unknown provider: {name}", reason="unknown_provider")
        return registration

    def _available(self) -> List[_Registration]:
        return [reg for reg in self._registrations if reg.adapter.enabled]

    def _record_success(self, reg: _Registration) -> None:
        reg.breaker.record_success()
        if self._metrics:
            self._metrics.record_provider_success(reg.adapter.name)

    def _record_failure(self, reg: _Registration, kind: str, detail: Any) -> None:
        logger.warning("Provider failure provider=%s kind=%s detail=%s", reg.adapter.name, kind, detail)
        reg.breaker.record_failure()
        if self._metrics:
            self._metrics.record_provider_failure(reg.adapter.name, kind)

    def _fallback(self) -> None:
        if self._metrics:
            self._metrics.record_rule_fallback()

    @traceable(run_type="chain", name="provider_chain_analyze_intent")
    async def analyze_intent(self, message: str, context: Mapping[str, Any] | None = None) -> IntentResult:
        for reg in self._available():
            if not reg.breaker.allow_request():
                logger.debug("Skipping provider=%s breaker open", reg.adapter.name)
                continue
            try:
                result = await run_with_deadline(
                    reg.adapter.analyze_intent(message, context, deadline=self._call_timeout),
                    self._call_timeout,
                    provider=reg.adapter.name,
                )
            except ProviderError as exc:
                self._record_failure(reg, exc.kind.value, exc)
                continue
            except asyncio.CancelledError:
                reg.breaker.release_probe()
                raise
            if result.confidence >= self._confidence_floor:
                self._record_success(reg)
                return result
            self._record_failure(
                reg,
                LOW_CONFIDENCE,
                f"{result.intent.value}@{result.confidence:.2f} < {self._confidence_floor:.2f}",
            )

        self._fallback()
        return self._rule_engine.classify(message)

    @traceable(run_type="chain", name="provider_chain_generate_response")
    async def generate_response(
        self,
        intent_result: IntentResult,
        entities: Entities,
        context: Mapping[str, Any] | None = None,
    ) -> Reply:
        for reg in self._available():
            if not reg.breaker.allow_request():
                logger.debug("Skipping provider=%s breaker open", reg.adapter.name)
                continue
            try:
                reply = await run_with_deadline(
                    reg.adapter.generate_response(intent_result, entities, context, deadline=self._call_timeout),
                    self._call_timeout,
                    provider=reg.adapter.name,
                )
            except ProviderError as exc:
                self._record_failure(reg, exc.kind.value, exc)
                continue
            except asyncio.CancelledError:
                reg.breaker.release_probe()
                raise
            self._record_success(reg)
            return reply

        self._fallback()
        return self._rule_engine.generate_response(intent_result, entities)

    async def _probe(self, reg: _Registration) -> None:
        try:
            health = await run_with_deadline(
                reg.adapter.health_check(deadline=self._call_timeout),
                self._call_timeout,
                provider=reg.adapter.name,
            )
        except ProviderError as exc:
            health = ProviderHealth(status=HealthStatus.ERROR, reason=str(exc), model=reg.adapter.model)
        reg.last_health = health
        reg.last_checked_at = datetime.now(timezone.utc)

    def _report(self, reg: _Registration) -> ProviderStatusReport:
        snapshot = reg.breaker.snapshot()
        health = reg.last_health
        if not reg.adapter.enabled:
            status = HealthStatus.DISABLED
            reason = health.reason if health and health.reason else "not configured"
        elif health is not None and health.status is HealthStatus.ERROR:
            status, reason = HealthStatus.ERROR, health.reason
        elif snapshot.state is not BreakerState.CLOSED:
            status, reason = HealthStatus.DEGRADED, f"circuit {snapshot.state.value}"
        else:
            status, reason = HealthStatus.HEALTHY, None
        return ProviderStatusReport(
            name=reg.adapter.name,
            status=status,
            reason=reason,
            breaker_state=snapshot.state.value,
            consecutive_failures=snapshot.consecutive_failures,
            last_health_check=health,
            last_checked_at=reg.last_checked_at,
        )

    async def provider_status(self, name: str, *, probe: bool = True) -> ProviderStatusReport:
        """Current breaker state plus (optionally refreshed) health of one adapter."""
        reg = self._get(name)
        if probe:
            await self._probe(reg)
        return self._report(reg)

    async def provider_statuses(self, *, probe: bool = True) -> List[ProviderStatusReport]:
        if probe:
            await asyncio.gather(*(self._probe(reg) for reg in self._registrations))
        return [self._report(reg) for reg in self._registrations]
