from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List


@dataclass
class MetricsSnapshot:
    turns_total: int
    intents: Dict[str, int]
    sources: Dict[str, int]
    provider_successes: Dict[str, int]
    provider_failures: Dict[str, Dict[str, int]]
    rule_fallbacks: int
    turn_timeouts: int
    internal_errors: int
    avg_response_latency_ms: float = 0.0
    latency_samples: int = 0


@dataclass
class _Counters:
    provider_successes: Dict[str, int] = field(default_factory=dict)
    provider_failures: Dict[str, Dict[str, int]] = field(default_factory=dict)
    intents: Dict[str, int] = field(default_factory=dict)
    sources: Dict[str, int] = field(default_factory=dict)


class MetricsService:
    """In-process counters for chat turns and provider outcomes."""

    def __init__(self, max_latency_samples: int = 1000) -> None:
        self._lock = Lock()
        self._turns_total = 0
        self._rule_fallbacks = 0
        self._turn_timeouts = 0
        self._internal_errors = 0
        self._counters = _Counters()
        self._response_latencies: List[float] = []
        self._max_latency_samples = max_latency_samples

    def record_turn(self, *, intent: str, source: str) -> None:
        with self._lock:
            self._turns_total += 1
            self._counters.intents[intent] = self._counters.intents.get(intent, 0) + 1
            self._counters.sources[source] = self._counters.sources.get(source, 0) + 1

    def record_provider_success(self, provider: str) -> None:
        with self._lock:
            successes = self._counters.provider_successes
            successes[provider] = successes.get(provider, 0) + 1

    def record_provider_failure(self, provider: str, kind: str) -> None:
        with self._lock:
            per_kind = self._counters.provider_failures.setdefault(provider, {})
            per_kind[kind] = per_kind.get(kind, 0) + 1

    def record_rule_fallback(self) -> None:
        with self._lock:
            self._rule_fallbacks += 1

    def record_turn_timeout(self) -> None:
        with self._lock:
            self._turn_timeouts += 1

    def record_internal_error(self) -> None:
        with self._lock:
            self._internal_errors += 1

    def record_response_latency(self, latency_ms: float) -> None:
        """Record response latency in milliseconds."""
        with self._lock:
            self._response_latencies.append(latency_ms)
            # Keep only recent samples
            if len(self._response_latencies) > self._max_latency_samples:
                self._response_latencies = self._response_latencies[-self._max_latency_samples:]

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            avg_latency = (
                sum(self._response_latencies) / len(self._response_latencies)
                if self._response_latencies else 0.0
            )
            return MetricsSnapshot(
                turns_total=self._turns_total,
                intents=dict(self._counters.intents),
                sources=dict(self._counters.sources),
                provider_successes=dict(self._counters.provider_successes),
                provider_failures={name: dict(kinds) for name, kinds in self._counters.provider_failures.items()},
                rule_fallbacks=self._rule_fallbacks,
                turn_timeouts=self._turn_timeouts,
                internal_errors=self._internal_errors,
                avg_response_latency_ms=avg_latency,
                latency_samples=len(self._response_latencies),
            )
