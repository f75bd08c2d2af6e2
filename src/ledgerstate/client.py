"""Main library client for standalone usage."""

from __future__ import annotations

import logging

from ledgerstate.collaborators import (
    CollectionConfigProvider,
    EventReader,
    PricingProvider,
)
from ledgerstate.config import LedgerStateSettings
from ledgerstate.core.models import ResolvedState, SystemHealth
from ledgerstate.engine import ResolutionEngine

logger = logging.getLogger(__name__)


class LedgerStateClient:
    """
    Main client for the ledgerstate library.

    Resolves collection state from the ledger with caching, rate limiting
    and source fallback.

    Usage:
        registry = StaticCollectionRegistry([config])
        async with LedgerStateClient(registry) as client:
            state = await client.resolve_collection_state("Test")

            # Skip the cache after a known change
            state = await client.force_refresh("Test")

    Settings are loaded from environment variables or can be passed explicitly.
    """

    def __init__(
        self,
        registry: CollectionConfigProvider,
        settings: LedgerStateSettings | None = None,
        *,
        pricing: PricingProvider | None = None,
        event_reader: EventReader | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            registry: Source of collection configuration.
            settings: Engine settings. If not provided, loaded from environment.
            pricing: Optional pricing provider, defaults to the base price.
            event_reader: Optional reader for collection events.
        """
        self._settings = settings or LedgerStateSettings()
        self._registry = registry
        self._pricing = pricing
        self._event_reader = event_reader
        self._engine: ResolutionEngine | None = None

    @property
    def engine(self) -> ResolutionEngine:
        self._ensure_initialized()
        return self._engine

    async def __aenter__(self) -> LedgerStateClient:
        """Initialize resources on context entry."""
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Clean up resources on context exit."""
        await self.close()

    async def _initialize(self) -> None:
        """Initialize client resources."""
        logging.getLogger("ledgerstate").setLevel(self._settings.log_level.upper())

        self._engine = ResolutionEngine.from_settings(
            self._settings,
            self._registry,
            pricing=self._pricing,
            event_reader=self._event_reader,
        )
        logger.info(
            f"Ledger state client initialized with sources: "
            f"{', '.join(s.name for s in self._engine.resolver.sources)}"
        )

    async def close(self) -> None:
        """Close all resources."""
        if self._engine:
            await self._engine.close()
            self._engine = None

    def _ensure_initialized(self) -> None:
        """Ensure client is initialized."""
        if self._engine is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with LedgerStateClient(registry) as client:'"
            )

    async def resolve_collection_state(self, name: str) -> ResolvedState | None:
        """
        Resolve the current state of a collection.

        Args:
            name: Collection identifier

        Returns:
            The resolved state, or None if the collection does not exist or
            the ledger is throttled and nothing is cached
        """
        self._ensure_initialized()
        return await self._engine.resolve_collection_state(name)

    async def force_refresh(self, name: str) -> ResolvedState | None:
        """Resolve a collection again, bypassing the cache."""
        self._ensure_initialized()
        return await self._engine.force_refresh(name)

    def invalidate(self, name: str) -> bool:
        self._ensure_initialized()
        return self._engine.invalidate(name)

    def health(self) -> SystemHealth:
        self._ensure_initialized()
        return self._engine.health()


# Convenience function for one-off resolutions
async def resolve_collection_state(
    name: str,
    registry: CollectionConfigProvider,
    *,
    settings: LedgerStateSettings | None = None,
) -> ResolvedState | None:
    """
    Resolve a collection (convenience function).

    For multiple resolutions, use LedgerStateClient so the cache is reused.
    """
    async with LedgerStateClient(registry, settings) as client:
        return await client.resolve_collection_state(name)
