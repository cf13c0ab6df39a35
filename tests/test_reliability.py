import time

import pytest

from experience_recall.errors import CircuitOpenError, OperationTimeoutError
from experience_recall.reliability import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    RateLimiter,
    call_with_timeout,
)


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _boom():
    raise RuntimeError("boom")


def test_circuit_opens_after_threshold():
    clock = FakeClock()
    breaker = CircuitBreaker('store', CircuitBreakerConfig(failure_threshold=2), clock=clock)

    for _ in range(2):
        with pytest.raises(RuntimeError):
            breaker.execute(_boom)

    assert breaker.state == CircuitState.OPEN
    assert not breaker.allow_request()
    with pytest.raises(CircuitOpenError):
        breaker.execute(lambda: 'never')


def test_success_resets_failure_count():
    breaker = CircuitBreaker('store', CircuitBreakerConfig(failure_threshold=2))
    with pytest.raises(RuntimeError):
        breaker.execute(_boom)
    assert breaker.execute(lambda: 'ok') == 'ok'
    assert breaker.failure_count == 0
    with pytest.raises(RuntimeError):
        breaker.execute(_boom)
    assert breaker.state == CircuitState.CLOSED


def test_half_open_probe_closes_on_success():
    clock = FakeClock()
    breaker = CircuitBreaker('provider', CircuitBreakerConfig(failure_threshold=1, reset_timeout_seconds=30),
                             clock=clock)
    with pytest.raises(RuntimeError):
        breaker.execute(_boom)

    clock.now += 30
    assert breaker.state == CircuitState.HALF_OPEN
    assert breaker.execute(lambda: 'probe') == 'probe'
    assert breaker.state == CircuitState.CLOSED


def test_half_open_probe_failure_reopens():
    clock = FakeClock()
    breaker = CircuitBreaker('provider', CircuitBreakerConfig(failure_threshold=1, reset_timeout_seconds=10),
                             clock=clock)
    with pytest.raises(RuntimeError):
        breaker.execute(_boom)
    clock.now += 10
    with pytest.raises(RuntimeError):
        breaker.execute(_boom)

    assert breaker.state == CircuitState.OPEN
    clock.now += 5
    with pytest.raises(CircuitOpenError):
        breaker.execute(lambda: 'still open')


def test_reset_closes_circuit():
    breaker = CircuitBreaker('provider', CircuitBreakerConfig(failure_threshold=1))
    with pytest.raises(RuntimeError):
        breaker.execute(_boom)
    breaker.reset()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.allow_request()


def test_rate_limiter_spaces_calls():
    clock = FakeClock()
    limiter = RateLimiter.per_second(4, clock=clock, sleep=clock.sleep)

    assert limiter.acquire() == 0.0
    assert limiter.acquire() == pytest.approx(0.25)
    clock.now += 1.0
    assert limiter.acquire() == 0.0
    assert clock.sleeps == [pytest.approx(0.25)]


def test_unlimited_rate_limiter_never_sleeps():
    clock = FakeClock()
    limiter = RateLimiter.per_second(0, clock=clock, sleep=clock.sleep)
    for _ in range(5):
        limiter.acquire()
    assert clock.sleeps == []


def test_rate_limiter_rejects_negative_interval():
    with pytest.raises(ValueError):
        RateLimiter(-1)


def test_call_with_timeout_returns_result():
    assert call_with_timeout(lambda x: x * 2, 1.0, 21) == 42
    assert call_with_timeout(lambda: 'inline', None) == 'inline'


def test_call_with_timeout_raises_on_slow_call():
    with pytest.raises(OperationTimeoutError, match='slow op timed out'):
        call_with_timeout(time.sleep, 0.05, 0.5, operation='slow op')


def test_call_with_timeout_propagates_errors():
    with pytest.raises(RuntimeError):
        call_with_timeout(_boom, 1.0)
