"""Concrete resolution sources: aggregator, direct scan, fallback endpoints."""

from __future__ import annotations

import logging
from typing import ClassVar

from ledgerstate.collaborators import (
    CollectionAggregator,
    CollectionConfigProvider,
    FlatPricing,
    PricingProvider,
)
from ledgerstate.core.exceptions import CollectionNotFoundError, SourceUnavailableError
from ledgerstate.core.models import CollectionState
from ledgerstate.core.types import SourceKind
from ledgerstate.ledger.scanner import LedgerScanner
from ledgerstate.resolution.base import ResolutionSource, SourceConfig

logger = logging.getLogger(__name__)


class AggregatorSource(ResolutionSource):
    """Primary source: a full collection state from the aggregator."""

    SOURCE_KIND: ClassVar[SourceKind] = SourceKind.AGGREGATOR
    BASE_CONFIDENCE: ClassVar[int] = 85
    PRIORITY: ClassVar[int] = 10

    def __init__(
        self,
        aggregator: CollectionAggregator,
        config: SourceConfig | None = None,
        *,
        name: str | None = None,
    ) -> None:
        super().__init__(config, name=name)
        self._aggregator = aggregator

    async def fetch(self, name: str) -> CollectionState | None:
        return await self._aggregator.get_collection_state(name)


class DirectScanSource(ResolutionSource):
    """Registry configuration merged with a direct supply scan of the ledger."""

    SOURCE_KIND: ClassVar[SourceKind] = SourceKind.DIRECT_SCAN
    BASE_CONFIDENCE: ClassVar[int] = 90
    PRIORITY: ClassVar[int] = 20

    def __init__(
        self,
        registry: CollectionConfigProvider,
        scanner: LedgerScanner,
        config: SourceConfig | None = None,
        *,
        pricing: PricingProvider | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(config, name=name)
        self._registry = registry
        self._scanner = scanner
        self._pricing = pricing or FlatPricing()

    @property
    def scanner(self) -> LedgerScanner:
        return self._scanner

    async def fetch(self, name: str) -> CollectionState | None:
        config = self._registry.get_collection_config(name)
        if config is None:
            raise CollectionNotFoundError(name)
        if not config.mint_address:
            raise SourceUnavailableError(
                message=f"No mint address configured for {name}",
                source=self.name,
            )

        scan = await self._scanner.scan(config.mint_address)

        return CollectionState(
            name=config.name,
            total_supply=config.total_supply,
            current_supply=scan.supply,
            mint_price=self._pricing.total_price(config.name, config.base_price),
            payment_token=config.payment_token,
            is_active=config.is_active,
            minting_enabled=config.minting_enabled,
            mint_address=config.mint_address,
            collection_address=config.collection_address,
            creator_wallet=config.creator_wallet,
            holders=scan.holders,
        )

    async def close(self) -> None:
        close = getattr(self._scanner.client, "close", None)
        if close is not None:
            await close()


class FallbackEndpointSource(DirectScanSource):
    """
    Direct scan through an independent fallback endpoint.

    The endpoint's latest checkpoint is queried first so that an unreachable
    endpoint fails fast before the heavier account scan.
    """

    SOURCE_KIND: ClassVar[SourceKind] = SourceKind.FALLBACK_ENDPOINT
    PRIORITY: ClassVar[int] = 30

    def __init__(
        self,
        index: int,
        registry: CollectionConfigProvider,
        scanner: LedgerScanner,
        config: SourceConfig | None = None,
        *,
        pricing: PricingProvider | None = None,
    ) -> None:
        super().__init__(
            registry,
            scanner,
            config,
            pricing=pricing,
            name=f"{SourceKind.FALLBACK_ENDPOINT}-{index}",
        )
        self.index = index

    @property
    def endpoint(self) -> str:
        return self._scanner.name

    @property
    def priority(self) -> int:
        return self.PRIORITY + self.index

    async def fetch(self, name: str) -> CollectionState | None:
        checkpoint = await self._scanner.client.query_latest_checkpoint()
        logger.debug(f"{self.name} ({self.endpoint}) reachable at checkpoint {checkpoint}")
        return await super().fetch(name)
