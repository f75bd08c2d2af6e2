"""Per-key circuit breaker with a single half-open probe."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Hashable

from ledgerstate.core.types import CircuitStatus, Clock

logger = logging.getLogger(__name__)


@dataclass
class BreakerConfig:
    """Configuration for the circuit breaker."""

    failure_threshold: int = 3
    cooldown_seconds: float = 600.0


@dataclass
class CircuitState:
    """Failure tracking for one key."""

    key: Hashable
    failures: int = 0
    last_failure_at: float = 0.0
    status: CircuitStatus = CircuitStatus.CLOSED
    probe_in_flight: bool = False

    @property
    def open(self) -> bool:
        return self.status != CircuitStatus.CLOSED


class CircuitBreaker:
    """
    Stops upstream attempts for a key after sustained failure.

    CLOSED -> OPEN after ``failure_threshold`` failures. Once
    ``cooldown_seconds`` have passed since the last failure the circuit goes
    HALF_OPEN and admits exactly one probe. The probe's success closes the
    circuit, its failure re-opens it with a fresh cooldown.
    """

    def __init__(
        self,
        config: BreakerConfig | None = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config or BreakerConfig()
        self._clock = clock
        self._states: dict[Hashable, CircuitState] = {}
        self._lock = threading.Lock()

    def is_open(self, key: Hashable) -> bool:
        """
        Return True when attempts for ``key`` must be short-circuited.

        A False answer after the cooldown hands the caller the probe slot;
        it must later call ``record_success``, ``record_failure`` or
        ``release_probe``.
        """
        now = self._clock()
        with self._lock:
            state = self._states.get(key)
            if state is None or state.status == CircuitStatus.CLOSED:
                return False

            if state.status == CircuitStatus.OPEN:
                if now - state.last_failure_at < self.config.cooldown_seconds:
                    return True
                state.status = CircuitStatus.HALF_OPEN
                state.failures = 0
                state.probe_in_flight = True
                logger.info(f"Circuit half-open for {key}, admitting probe")
                return False

            # HALF_OPEN
            if state.probe_in_flight:
                return True
            state.probe_in_flight = True
            return False

    def record_failure(self, key: Hashable) -> None:
        now = self._clock()
        with self._lock:
            state = self._states.setdefault(key, CircuitState(key=key))
            state.failures += 1
            state.last_failure_at = now
            state.probe_in_flight = False

            if state.status == CircuitStatus.HALF_OPEN:
                state.status = CircuitStatus.OPEN
                logger.warning(f"Probe failed, circuit re-opened for {key}")
            elif state.failures >= self.config.failure_threshold and state.status != CircuitStatus.OPEN:
                state.status = CircuitStatus.OPEN
                logger.warning(f"Circuit opened for {key} after {state.failures} failures")

    def record_success(self, key: Hashable) -> None:
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return
            if state.status != CircuitStatus.CLOSED:
                logger.info(f"Circuit closed for {key}")
            state.failures = 0
            state.status = CircuitStatus.CLOSED
            state.probe_in_flight = False

    def release_probe(self, key: Hashable) -> None:
        """Give back a half-open probe slot that never reached upstream."""
        with self._lock:
            state = self._states.get(key)
            if state is not None and state.status == CircuitStatus.HALF_OPEN:
                state.probe_in_flight = False

    def reset(self, key: Hashable) -> None:
        with self._lock:
            self._states.pop(key, None)

    def state(self, key: Hashable) -> CircuitState | None:
        """Copy of the current state for ``key``."""
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return None
            return CircuitState(
                key=state.key,
                failures=state.failures,
                last_failure_at=state.last_failure_at,
                status=state.status,
                probe_in_flight=state.probe_in_flight,
            )

    def open_keys(self) -> list[Hashable]:
        """Keys whose circuit is not closed."""
        with self._lock:
            return [key for key, state in self._states.items() if state.open]
