"""Tests for the per-key circuit breaker."""

from __future__ import annotations

import pytest

from ledgerstate.core.types import CircuitStatus
from ledgerstate.limits.circuit_breaker import BreakerConfig, CircuitBreaker

KEY = "collection_state:Test"


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    """Create a breaker with threshold 3 and a 600s cooldown."""
    return CircuitBreaker(BreakerConfig(failure_threshold=3, cooldown_seconds=600), clock=clock)


def trip(breaker: CircuitBreaker, key: str = KEY) -> None:
    for _ in range(breaker.config.failure_threshold):
        breaker.record_failure(key)


# ============================================================================
# Closed State Tests
# ============================================================================


class TestCircuitBreakerClosed:
    """Tests for failure counting while closed."""

    def test_unknown_key_is_closed(self, breaker: CircuitBreaker):
        assert breaker.is_open(KEY) is False
        assert breaker.state(KEY) is None

    def test_below_threshold_stays_closed(self, breaker: CircuitBreaker):
        breaker.record_failure(KEY)
        breaker.record_failure(KEY)
        assert breaker.is_open(KEY) is False
        assert breaker.state(KEY).failures == 2

    def test_threshold_opens(self, breaker: CircuitBreaker):
        trip(breaker)
        assert breaker.is_open(KEY) is True
        assert breaker.state(KEY).status == CircuitStatus.OPEN

    def test_success_resets_count(self, breaker: CircuitBreaker):
        """A success before the threshold should start the count again."""
        breaker.record_failure(KEY)
        breaker.record_failure(KEY)
        breaker.record_success(KEY)
        breaker.record_failure(KEY)
        breaker.record_failure(KEY)
        assert breaker.is_open(KEY) is False

    def test_keys_are_independent(self, breaker: CircuitBreaker):
        trip(breaker)
        assert breaker.is_open("collection_state:Other") is False


# ============================================================================
# Open and Half-Open Tests
# ============================================================================


class TestCircuitBreakerRecovery:
    """Tests for the cooldown and the half-open probe."""

    def test_open_until_cooldown(self, breaker: CircuitBreaker, clock):
        trip(breaker)
        clock.advance(599)
        assert breaker.is_open(KEY) is True

    def test_exactly_one_probe_after_cooldown(self, breaker: CircuitBreaker, clock):
        trip(breaker)
        clock.advance(600)
        assert breaker.is_open(KEY) is False
        assert breaker.is_open(KEY) is True
        assert breaker.is_open(KEY) is True
        assert breaker.state(KEY).status == CircuitStatus.HALF_OPEN

    def test_probe_success_closes(self, breaker: CircuitBreaker, clock):
        trip(breaker)
        clock.advance(600)
        assert breaker.is_open(KEY) is False
        breaker.record_success(KEY)
        state = breaker.state(KEY)
        assert state.status == CircuitStatus.CLOSED
        assert state.failures == 0
        assert breaker.is_open(KEY) is False

    def test_probe_failure_reopens_with_fresh_cooldown(self, breaker: CircuitBreaker, clock):
        trip(breaker)
        clock.advance(600)
        assert breaker.is_open(KEY) is False
        breaker.record_failure(KEY)

        assert breaker.state(KEY).status == CircuitStatus.OPEN
        assert breaker.state(KEY).last_failure_at == clock.now
        clock.advance(599)
        assert breaker.is_open(KEY) is True
        clock.advance(1)
        assert breaker.is_open(KEY) is False

    def test_release_probe_admits_another(self, breaker: CircuitBreaker, clock):
        trip(breaker)
        clock.advance(600)
        assert breaker.is_open(KEY) is False
        breaker.release_probe(KEY)
        assert breaker.is_open(KEY) is False
        assert breaker.is_open(KEY) is True

    def test_release_probe_noop_when_closed(self, breaker: CircuitBreaker):
        breaker.record_failure(KEY)
        breaker.release_probe(KEY)
        assert breaker.state(KEY).status == CircuitStatus.CLOSED


# ============================================================================
# Reset and Inspection Tests
# ============================================================================


class TestCircuitBreakerInspection:
    """Tests for reset, state copies and open key listing."""

    def test_reset_closes(self, breaker: CircuitBreaker):
        trip(breaker)
        breaker.reset(KEY)
        assert breaker.is_open(KEY) is False
        assert breaker.state(KEY) is None

    def test_state_is_a_copy(self, breaker: CircuitBreaker):
        breaker.record_failure(KEY)
        state = breaker.state(KEY)
        state.failures = 99
        assert breaker.state(KEY).failures == 1

    def test_open_keys(self, breaker: CircuitBreaker):
        trip(breaker)
        breaker.record_failure("collection_state:Other")
        assert breaker.open_keys() == [KEY]
