"""Source registry for building the ordered resolution chain."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ledgerstate.collaborators import LedgerAggregator
from ledgerstate.ledger.client import LedgerClientConfig, RpcLedgerClient
from ledgerstate.ledger.scanner import LedgerScanner
from ledgerstate.resolution.base import ResolutionSource, SourceConfig
from ledgerstate.resolution.chain import FallbackConfig, MultiSourceResolver
from ledgerstate.resolution.scoring import ConfidenceScorer, SupplyVerifier
from ledgerstate.resolution.sources import (
    AggregatorSource,
    DirectScanSource,
    FallbackEndpointSource,
)

if TYPE_CHECKING:
    from ledgerstate.collaborators import (
        CollectionConfigProvider,
        EventReader,
        PricingProvider,
    )
    from ledgerstate.config import LedgerStateSettings


class SourceRegistry:
    """
    Factory for creating and managing resolution sources.

    Builds the aggregator, direct-scan and fallback-endpoint sources from
    settings and creates resolvers over them.
    """

    def __init__(self, verifier: SupplyVerifier | None = None) -> None:
        self._sources: list[ResolutionSource] = []
        self.verifier = verifier

    def register(self, source: ResolutionSource) -> None:
        """Register a source."""
        self._sources.append(source)

    @property
    def sources(self) -> list[ResolutionSource]:
        return list(self._sources)

    def get_resolver(
        self,
        scorer: ConfidenceScorer | None = None,
        config: FallbackConfig | None = None,
    ) -> MultiSourceResolver:
        """Get a resolver over the registered sources."""
        return MultiSourceResolver(
            self._sources,
            scorer or ConfidenceScorer(verifier=self.verifier),
            config,
        )

    @classmethod
    def from_settings(
        cls,
        settings: "LedgerStateSettings",
        config_provider: "CollectionConfigProvider",
        *,
        pricing: "PricingProvider | None" = None,
        event_reader: "EventReader | None" = None,
    ) -> "SourceRegistry":
        """
        Create a registry with sources configured from settings.

        The primary endpoint backs the aggregator, the direct scan and the
        cross-verification scan; each fallback URL gets its own client.
        """
        source_config = SourceConfig(timeout=settings.source_timeout)

        primary = LedgerScanner(
            RpcLedgerClient(
                LedgerClientConfig(
                    url=settings.rpc_url,
                    name="primary",
                    timeout=settings.rpc_timeout,
                )
            ),
            program_id=settings.token_program_id,
        )
        registry = cls(verifier=primary)

        registry.register(
            AggregatorSource(
                LedgerAggregator(
                    config_provider,
                    primary,
                    pricing=pricing,
                    event_reader=event_reader,
                ),
                source_config,
            )
        )
        registry.register(
            DirectScanSource(config_provider, primary, source_config, pricing=pricing)
        )

        for index, url in enumerate(settings.fallback_rpc_urls, start=1):
            scanner = LedgerScanner(
                RpcLedgerClient(
                    LedgerClientConfig(url=url, timeout=settings.rpc_timeout)
                ),
                program_id=settings.token_program_id,
            )
            registry.register(
                FallbackEndpointSource(
                    index,
                    config_provider,
                    scanner,
                    source_config,
                    pricing=pricing,
                )
            )

        return registry
