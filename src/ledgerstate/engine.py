"""Resolution facade tying cache, limits and the source chain together."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from ledgerstate.cache.keys import CacheKeys
from ledgerstate.cache.ttl import CacheRecord, TTLCache
from ledgerstate.core.exceptions import (
    CollectionNotFoundError,
    ResolutionError,
    ThrottledError,
)
from ledgerstate.core.models import CacheKey, ResolvedState, SystemHealth
from ledgerstate.core.types import CacheClass, Clock
from ledgerstate.limits.circuit_breaker import BreakerConfig, CircuitBreaker
from ledgerstate.limits.rate_limiter import RateLimitConfig, RateLimiter
from ledgerstate.limits.singleflight import SingleFlight
from ledgerstate.resolution.chain import FallbackConfig, MultiSourceResolver
from ledgerstate.resolution.registry import SourceRegistry
from ledgerstate.resolution.scoring import ConfidenceScorer

if TYPE_CHECKING:
    from ledgerstate.collaborators import (
        CollectionConfigProvider,
        EventReader,
        PricingProvider,
    )
    from ledgerstate.config import LedgerStateSettings

logger = logging.getLogger(__name__)


class ResolutionEngine:
    """
    Answers "what is the current state of this collection?".

    Lookup order for a key:

    1. Cache. A positive record returns the state, a negative record None.
    2. Single-flight: concurrent misses for one key share one resolution.
    3. Circuit breaker and rate limiter. When either refuses, the last
       cached value is served (marked stale if expired) or None.
    4. The multi-source resolver. Its outcome is cached and reported to
       the breaker.

    All state lives on the instance; separate engines share nothing.
    """

    def __init__(
        self,
        resolver: MultiSourceResolver,
        *,
        cache: TTLCache | None = None,
        rate_limiter: RateLimiter | None = None,
        breaker: CircuitBreaker | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.resolver = resolver
        self._clock = clock
        self.cache = cache or TTLCache(clock=clock)
        self.rate_limiter = rate_limiter or RateLimiter(clock=clock)
        self.breaker = breaker or CircuitBreaker(clock=clock)
        self._flights = SingleFlight()

    @classmethod
    def from_settings(
        cls,
        settings: "LedgerStateSettings",
        config_provider: "CollectionConfigProvider",
        *,
        pricing: "PricingProvider | None" = None,
        event_reader: "EventReader | None" = None,
        clock: Clock = time.monotonic,
    ) -> "ResolutionEngine":
        """Create an engine with sources, limits and cache configured from settings."""
        registry = SourceRegistry.from_settings(
            settings,
            config_provider,
            pricing=pricing,
            event_reader=event_reader,
        )
        scorer = ConfidenceScorer(
            verifier=registry.verifier,
            cross_verify_below=settings.cross_verify_below,
            tolerance=settings.supply_tolerance,
            scan_timeout=settings.scan_timeout,
        )
        resolver = registry.get_resolver(
            scorer,
            FallbackConfig(
                accept_confidence=settings.accept_confidence,
                min_confidence=settings.min_confidence,
                total_timeout=settings.resolution_total_timeout,
            ),
        )

        return cls(
            resolver,
            cache=TTLCache(
                settings.positive_ttl,
                settings.negative_ttl,
                max_entries_per_class=settings.cache_max_entries,
                clock=clock,
            ),
            rate_limiter=RateLimiter(
                RateLimitConfig(
                    window_seconds=settings.rate_limit_window,
                    per_key_max=settings.rate_limit_per_key_max,
                    global_max=settings.rate_limit_global_max,
                    cooldown_seconds=settings.rate_limit_cooldown,
                ),
                clock=clock,
            ),
            breaker=CircuitBreaker(
                BreakerConfig(
                    failure_threshold=settings.breaker_failure_threshold,
                    cooldown_seconds=settings.breaker_cooldown,
                ),
                clock=clock,
            ),
            clock=clock,
        )

    async def resolve_collection_state(self, name: str) -> ResolvedState | None:
        """
        Resolve the current state of a collection.

        Args:
            name: Collection identifier

        Returns:
            The resolved state, or None when the collection does not exist or
            the request was throttled with nothing cached

        Raises:
            SourcesExhaustedError: No source returned data
            LowConfidenceError: No source was confident enough
        """
        key = CacheKeys.collection_state(name)

        value, hit = self.cache.get(key)
        if hit:
            logger.debug(f"Cache hit for {key}")
            return value

        return await self._flights.do(
            CacheKeys.flight(key),
            lambda: self._resolve_uncached(key),
        )

    async def force_refresh(self, name: str) -> ResolvedState | None:
        """
        Resolve a collection again, ignoring the cache and the breaker.

        The limiter window is bypassed but its cooldown still applies; when
        the cooldown refuses, the previously cached value is returned.
        """
        key = CacheKeys.collection_state(name)

        remembered = self.cache.peek(key)
        self.cache.clear_key(key)
        self.breaker.reset(key)
        logger.info(f"Force refresh requested for {key}")

        return await self._flights.do(
            CacheKeys.flight(key, namespace="refresh"),
            lambda: self._resolve_uncached(key, bypass_window=True, remembered=remembered),
        )

    def invalidate(self, name: str) -> bool:
        """Drop the cached state of one collection. Returns True if present."""
        return self.cache.clear_key(CacheKeys.collection_state(name))

    def clear_cache(self) -> None:
        self.cache.clear()

    def health(self) -> SystemHealth:
        """Report cache sizes, sources, open circuits and in-flight keys."""
        stats = self.cache.stats()
        sources = [s.name for s in self.resolver.sources if s.is_enabled]
        open_circuits = [str(key) for key in self.breaker.open_keys()]

        if not sources:
            status = "unhealthy"
        elif open_circuits:
            status = "degraded"
        else:
            status = "healthy"

        return SystemHealth(
            status=status,
            sources=sources,
            positive_entries=stats.positive_entries,
            negative_entries=stats.negative_entries,
            cache_hits=stats.hits,
            cache_misses=stats.misses,
            open_circuits=open_circuits,
            in_flight=self._flights.in_flight(),
        )

    async def _resolve_uncached(
        self,
        key: CacheKey,
        *,
        bypass_window: bool = False,
        remembered: CacheRecord | None = None,
    ) -> ResolvedState | None:
        try:
            self._admit(key, bypass_window=bypass_window)
        except ThrottledError as e:
            logger.warning(f"Throttled {key}: {e.message}")
            if remembered is not None:
                self.cache.restore(key, remembered)
            return self._cached_value(key, remembered)

        try:
            outcome = await self.resolver.resolve(key)
        except CollectionNotFoundError:
            self.cache.set(key, None, CacheClass.NEGATIVE)
            self.breaker.record_success(key)
            logger.info(f"Cached not-found record for {key}")
            return None
        except ResolutionError as e:
            self.breaker.record_failure(key)
            if remembered is not None:
                self.cache.restore(key, remembered)
            e.stale_state = self._cached_value(key, remembered)
            logger.warning(f"Resolution failed for {key}: {e.message}")
            raise
        except asyncio.CancelledError:
            self.breaker.release_probe(key)
            raise
        except Exception:
            self.breaker.record_failure(key)
            raise

        self.cache.set(key, outcome.state, CacheClass.POSITIVE)
        self.breaker.record_success(key)
        logger.info(
            f"Resolved {key} via {outcome.source} at {outcome.state.confidence}% confidence "
            f"(tried {', '.join(outcome.sources_tried)})"
        )
        return outcome.state

    def _admit(self, key: CacheKey, *, bypass_window: bool) -> None:
        """Raise ThrottledError unless the breaker and limiter allow an upstream call."""
        if self.breaker.is_open(key):
            raise ThrottledError(f"Circuit open for {key}", reason="circuit_open")

        if not self.rate_limiter.allow(key, bypass_window=bypass_window):
            # The probe slot, if this call held it, was never used
            self.breaker.release_probe(key)
            raise ThrottledError(f"Rate limit reached for {key}", reason="rate_limited")

    def _cached_value(
        self,
        key: CacheKey,
        remembered: CacheRecord | None = None,
    ) -> ResolvedState | None:
        """Last cached state for ``key`` of any age, marked stale once expired."""
        record = self.cache.peek(key) or remembered
        if record is None or record.value is None:
            return None

        age = self._clock() - record.created_at
        if age >= self.cache.ttl_for(record.classification):
            return record.value.model_copy(update={"stale": True})
        return record.value

    async def close(self) -> None:
        """Close all sources."""
        await self.resolver.close()

    async def __aenter__(self) -> "ResolutionEngine":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
