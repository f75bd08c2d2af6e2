"""Coalescing of concurrent identical async calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Flight(Generic[T]):
    task: asyncio.Task[T]
    waiters: int = 0


class SingleFlight:
    """
    Runs at most one call per key at a time.

    Callers arriving while a call for the same key is running wait for that
    call and receive its result or exception. Cancelling one caller only
    stops its wait; the shared call is cancelled once nobody waits for it.

    Must be used from a single event loop.
    """

    def __init__(self) -> None:
        self._flights: dict[str, _Flight[Any]] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        flight = self._flights.get(key)
        if flight is None:
            flight = _Flight(task=asyncio.ensure_future(fn()))
            self._flights[key] = flight
            flight.task.add_done_callback(lambda task, k=key, f=flight: self._finish(k, f))
        else:
            logger.debug(f"Joining in-flight call: {key}")

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                logger.debug(f"Last waiter left, cancelling call: {key}")
                flight.task.cancel()

    def in_flight(self) -> list[str]:
        return list(self._flights)

    def __contains__(self, key: str) -> bool:
        return key in self._flights

    def _finish(self, key: str, flight: _Flight[Any]) -> None:
        if self._flights.get(key) is flight:
            del self._flights[key]
        # Mark the outcome as retrieved when every waiter has gone
        if not flight.task.cancelled():
            flight.task.exception()
