from __future__ import annotations

from app.services.circuit_breaker import BreakerState, CircuitBreaker
from conftest import FakeClock


def _breaker(clock: FakeClock, threshold: int = 3, cooldown: float = 60.0) -> CircuitBreaker:
    return CircuitBreaker("p", failure_threshold=threshold, cooldown_seconds=cooldown, clock=clock)


def test_opens_after_consecutive_failures(fake_clock: FakeClock) -> None:
    breaker = _breaker(fake_clock)

    breaker.record_failure()
    breaker.record_failure()
    assert breaker.state == BreakerState.CLOSED
    assert breaker.allow_request()

    breaker.record_failure()
    assert breaker.state == BreakerState.OPEN
    assert not breaker.allow_request()


def test_success_resets_failure_count(fake_clock: FakeClock) -> None:
    breaker = _breaker(fake_clock)

    breaker.record_failure()
    breaker.record_failure()
    breaker.record_success()
    breaker.record_failure()

    assert breaker.state == BreakerState.CLOSED
    assert breaker.snapshot().consecutive_failures == 1


def test_half_open_after_cooldown_allows_single_probe(fake_clock: FakeClock) -> None:
    breaker = _breaker(fake_clock, threshold=1)
    breaker.record_failure()

    fake_clock.advance(59.9)
    assert not breaker.allow_request()

    fake_clock.advance(0.1)
    assert breaker.state == BreakerState.HALF_OPEN
    assert breaker.allow_request()
    # probe in flight: everyone else keeps skipping
    assert not breaker.allow_request()


def test_probe_success_closes(fake_clock: FakeClock) -> None:
    breaker = _breaker(fake_clock, threshold=1)
    breaker.record_failure()
    fake_clock.advance(60)

    assert breaker.allow_request()
    breaker.record_success()

    assert breaker.state == BreakerState.CLOSED
    assert breaker.allow_request()
    assert breaker.allow_request()


def test_probe_failure_reopens_with_fresh_cooldown(fake_clock: FakeClock) -> None:
    breaker = _breaker(fake_clock, threshold=3)
    for _ in range(3):
        breaker.record_failure()
    fake_clock.advance(60)

    assert breaker.allow_request()
    breaker.record_failure()

    assert breaker.state == BreakerState.OPEN
    fake_clock.advance(30)
    assert not breaker.allow_request()
    fake_clock.advance(30)
    assert breaker.allow_request()


def test_released_probe_can_be_claimed_again(fake_clock: FakeClock) -> None:
    breaker = _breaker(fake_clock, threshold=1)
    breaker.record_failure()
    fake_clock.advance(60)

    assert breaker.allow_request()
    breaker.release_probe()

    assert breaker.allow_request()
