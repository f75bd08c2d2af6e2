"""Interfaces to the collaborators the engine depends on, with simple defaults."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from ledgerstate.core.exceptions import CollectionNotFoundError
from ledgerstate.core.models import CollectionConfig, CollectionEvent, CollectionState
from ledgerstate.core.types import EventType
from ledgerstate.ledger.scanner import LedgerScanner

logger = logging.getLogger(__name__)


@runtime_checkable
class CollectionConfigProvider(Protocol):
    """Supplies static configuration for known collections."""

    def get_collection_config(self, name: str) -> CollectionConfig | None: ...


@runtime_checkable
class PricingProvider(Protocol):
    """Turns a base price into the total price a buyer pays."""

    def total_price(self, collection: str, base_price: float) -> float: ...


@runtime_checkable
class EventReader(Protocol):
    """Reads recent events recorded for a collection."""

    async def recent_events(self, config: CollectionConfig) -> list[CollectionEvent]: ...


@runtime_checkable
class CollectionAggregator(Protocol):
    """Produces a complete collection state in one call."""

    async def get_collection_state(self, name: str) -> CollectionState | None: ...


class StaticCollectionRegistry:
    """In-memory collection registry."""

    def __init__(self, configs: Iterable[CollectionConfig] = ()) -> None:
        self._configs: dict[str, CollectionConfig] = {}
        self._lock = threading.Lock()
        for config in configs:
            self.register(config)

    def register(self, config: CollectionConfig) -> None:
        with self._lock:
            self._configs[config.name] = config

    def remove(self, name: str) -> bool:
        with self._lock:
            return self._configs.pop(name, None) is not None

    def names(self) -> list[str]:
        with self._lock:
            return list(self._configs)

    def get_collection_config(self, name: str) -> CollectionConfig | None:
        with self._lock:
            return self._configs.get(name)


class FlatPricing:
    """Pricing provider that charges exactly the base price."""

    def total_price(self, collection: str, base_price: float) -> float:
        return base_price


class LedgerAggregator:
    """
    Aggregates registry configuration, ledger scans and events into a state.

    Phase, reveal status, last mint time and volume are derived from the
    event log when an event reader is configured.
    """

    def __init__(
        self,
        registry: CollectionConfigProvider,
        scanner: LedgerScanner,
        *,
        pricing: PricingProvider | None = None,
        event_reader: EventReader | None = None,
    ) -> None:
        self._registry = registry
        self._scanner = scanner
        self._pricing = pricing or FlatPricing()
        self._event_reader = event_reader

    async def get_collection_state(self, name: str) -> CollectionState | None:
        config = self._registry.get_collection_config(name)
        if config is None:
            raise CollectionNotFoundError(name)

        supply = 0
        holders: list[str] = []
        if config.mint_address:
            scan = await self._scanner.scan(config.mint_address)
            supply, holders = scan.supply, scan.holders
        else:
            logger.warning(f"Collection {name} has no mint address, reporting zero supply")

        events: list[CollectionEvent] = []
        if self._event_reader is not None:
            events = await self._event_reader.recent_events(config)

        return CollectionState(
            name=config.name,
            total_supply=config.total_supply,
            current_supply=supply,
            mint_price=self._pricing.total_price(config.name, config.base_price),
            payment_token=config.payment_token,
            is_active=config.is_active,
            minting_enabled=config.minting_enabled,
            active_phase=active_phase(events),
            mint_address=config.mint_address,
            collection_address=config.collection_address,
            creator_wallet=config.creator_wallet,
            holders=holders,
            recent_events=events,
            last_mint_time=last_mint_time(events),
            total_volume=total_volume(events),
            is_revealed=any(e.type == EventType.REVEAL for e in events),
        )


def last_mint_time(events: list[CollectionEvent]) -> float:
    mints = [e.timestamp for e in events if e.type == EventType.MINT]
    return max(mints) if mints else 0.0


def total_volume(events: list[CollectionEvent]) -> float:
    return sum(e.price for e in events if e.type == EventType.MINT and e.price)


def active_phase(events: list[CollectionEvent]) -> str | None:
    changes = [e for e in events if e.type == EventType.PHASE_CHANGE and e.phase]
    if not changes:
        return None
    return max(changes, key=lambda e: e.timestamp).phase
