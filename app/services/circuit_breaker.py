from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from threading import Lock
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class BreakerState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class BreakerSnapshot:
    name: str
    state: BreakerState
    consecutive_failures: int
    opened_at: Optional[float]
    probe_in_flight: bool


class CircuitBreaker:
    """Per-adapter CLOSED -> OPEN -> HALF_OPEN -> CLOSED state machine.

    ``failure_threshold`` consecutive failures open the breaker. After
    ``cooldown_seconds`` one probe call is let through; its outcome closes the
    breaker or re-opens it with a fresh cool-down. All transitions happen under
    a lock so concurrent turns see one consistent state.
    """

    def __init__(
        self,
        name: str,
        *,
        failure_threshold: int = 3,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.name = name
        self._failure_threshold = failure_threshold
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._lock = Lock()
        self._state = BreakerState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False

    @property
    def state(self) -> BreakerState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def _maybe_half_open(self) -> None:
        if (
            self._state is BreakerState.OPEN
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self._cooldown_seconds
        ):
            self._state = BreakerState.HALF_OPEN
            self._probe_in_flight = False
            logger.info("Circuit breaker half-open provider=%s", self.name)

    def allow_request(self) -> bool:
        """True if a call may go through now. Claims the probe slot when half-open."""
        with self._lock:
            self._maybe_half_open()
            if self._state is BreakerState.CLOSED:
                return True
            if self._state is BreakerState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            previous = self._state
            self._state = BreakerState.CLOSED
            self._consecutive_failures = 0
            self._opened_at = None
            self._probe_in_flight = False
        if previous is not BreakerState.CLOSED:
            logger.info("Circuit breaker closed provider=%s", self.name)

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self._probe_in_flight = False
            if self._state is BreakerState.HALF_OPEN or (
                self._state is BreakerState.CLOSED and self._consecutive_failures >= self._failure_threshold
            ):
                self._trip()

    def release_probe(self) -> None:
        """Give back a claimed probe slot without an outcome (caller was cancelled)."""
        with self._lock:
            self._probe_in_flight = False

    def _trip(self) -> None:
        self._state = BreakerState.OPEN
        self._opened_at = self._clock()
        logger.warning(
            "Circuit breaker opened provider=%s failures=%d cooldown=%.0fs",
            self.name,
            self._consecutive_failures,
            self._cooldown_seconds,
        )

    def snapshot(self) -> BreakerSnapshot:
        with self._lock:
            self._maybe_half_open()
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                consecutive_failures=self._consecutive_failures,
                opened_at=self._opened_at,
                probe_in_flight=self._probe_in_flight,
            )
