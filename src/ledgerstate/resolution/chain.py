"""Chain resolver for confidence-gated fallback resolution."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from ledgerstate.core.exceptions import (
    CollectionNotFoundError,
    LowConfidenceError,
    SourcesExhaustedError,
    SourceUnavailableError,
)
from ledgerstate.core.models import CacheKey, CollectionState, ResolvedState, SourceAttempt
from ledgerstate.core.types import AttemptStatus
from ledgerstate.resolution.base import ResolutionSource
from ledgerstate.resolution.scoring import ConfidenceScorer, ScoreResult

logger = logging.getLogger(__name__)


@dataclass
class FallbackConfig:
    """Configuration for fallback resolution."""

    # Confidence at which a source is returned without trying the rest
    accept_confidence: int = 80

    # Lowest confidence a best-so-far candidate may be returned with
    min_confidence: int = 60

    # Timeout for the entire fallback chain (seconds)
    total_timeout: float = 60.0


@dataclass
class ResolutionOutcome:
    """A resolved state together with every attempt that led to it."""

    state: ResolvedState
    attempts: list[SourceAttempt] = field(default_factory=list)

    @property
    def source(self) -> str:
        return self.state.source

    @property
    def sources_tried(self) -> list[str]:
        return [a.source for a in self.attempts]


@dataclass
class _Candidate:
    source: ResolutionSource
    state: CollectionState
    score: ScoreResult


class MultiSourceResolver:
    """
    Tries sources in trust order until one is confident enough.

    Features:
    - Per-source and whole-chain timeouts
    - Immediate return at ``accept_confidence``
    - Best-so-far fallback at ``min_confidence``; ties keep the earlier source
    - Aggregate errors naming every source and its failure reason
    """

    def __init__(
        self,
        sources: list[ResolutionSource],
        scorer: ConfidenceScorer,
        config: FallbackConfig | None = None,
    ) -> None:
        # Stable sort: equal priorities keep their configured order
        self._sources = sorted(sources, key=lambda s: s.priority)
        self.scorer = scorer
        self.config = config or FallbackConfig()

    @property
    def sources(self) -> list[ResolutionSource]:
        return list(self._sources)

    async def resolve(self, key: CacheKey) -> ResolutionOutcome:
        """
        Resolve ``key`` using sources in priority order with fallback.

        Raises:
            CollectionNotFoundError: A source reported the collection missing
            LowConfidenceError: Data was returned but none scored high enough
            SourcesExhaustedError: No source returned data
        """
        attempts: list[SourceAttempt] = []
        best: _Candidate | None = None
        returned_data = False

        active_sources = [s for s in self._sources if s.is_enabled]
        if not active_sources:
            raise SourcesExhaustedError(f"No sources enabled for {key}", attempts)

        try:
            async with asyncio.timeout(self.config.total_timeout):
                for source in active_sources:
                    candidate, attempt = await self._try_source(source, key)
                    attempts.append(attempt)
                    if attempt.status in (AttemptStatus.ERROR, AttemptStatus.TIMEOUT):
                        continue

                    score = await self.scorer.score(candidate, key, source.base_confidence)
                    attempt.confidence = score.confidence
                    attempt.warnings = list(score.warnings)

                    if candidate is None:
                        attempt.status = AttemptStatus.LOW_CONFIDENCE
                        continue
                    returned_data = True

                    if score.confidence >= self.config.accept_confidence:
                        attempt.status = AttemptStatus.ACCEPTED
                        return self._outcome(_Candidate(source, candidate, score), attempts)

                    if score.confidence >= self.config.min_confidence:
                        attempt.status = AttemptStatus.CANDIDATE
                        if best is None or score.confidence > best.score.confidence:
                            best = _Candidate(source, candidate, score)
                    else:
                        attempt.status = AttemptStatus.LOW_CONFIDENCE

        except TimeoutError:
            logger.warning(f"Resolution of {key} timed out after {self.config.total_timeout}s")

        if best is not None:
            logger.info(
                f"Using best candidate for {key} from {best.source.name} "
                f"at {best.score.confidence}% confidence"
            )
            return self._outcome(best, attempts)

        summary = "; ".join(f"{a.source}: {a.reason}" for a in attempts) or "no sources tried"
        if returned_data:
            raise LowConfidenceError(f"No source was confident enough for {key} ({summary})", attempts)
        raise SourcesExhaustedError(f"All sources failed for {key} ({summary})", attempts)

    async def _try_source(
        self,
        source: ResolutionSource,
        key: CacheKey,
    ) -> tuple[CollectionState | None, SourceAttempt]:
        """Try a single source with error handling."""
        start = time.monotonic()
        attempt = SourceAttempt(
            source=source.name,
            endpoint=source.endpoint,
            status=AttemptStatus.CANDIDATE,
        )

        try:
            async with asyncio.timeout(source.timeout):
                candidate = await source.fetch(key.identifier)
        except CollectionNotFoundError:
            source.record_attempt(True, (time.monotonic() - start) * 1000)
            logger.info(f"Source {source.name} reports {key} does not exist")
            raise
        except TimeoutError:
            attempt.status = AttemptStatus.TIMEOUT
            attempt.error_message = f"timed out after {source.timeout}s"
            logger.warning(f"Source {source.name} timed out for {key}")
            candidate = None
        except SourceUnavailableError as e:
            attempt.status = AttemptStatus.ERROR
            attempt.error_message = e.message
            logger.warning(f"Source {source.name} unavailable for {key}: {e.message}")
            candidate = None
        except Exception as e:
            attempt.status = AttemptStatus.ERROR
            attempt.error_message = str(e) or type(e).__name__
            logger.exception(f"Source {source.name} failed for {key}: {e}")
            candidate = None

        attempt.duration_ms = (time.monotonic() - start) * 1000
        source.record_attempt(attempt.status == AttemptStatus.CANDIDATE, attempt.duration_ms)
        return candidate, attempt

    @staticmethod
    def _outcome(best: _Candidate, attempts: list[SourceAttempt]) -> ResolutionOutcome:
        state = ResolvedState.from_candidate(
            best.state,
            source=best.source.name,
            confidence=best.score.confidence,
            warnings=best.score.warnings,
        )
        for warning in state.warnings:
            logger.warning(f"{state.name} via {best.source.name}: {warning}")
        return ResolutionOutcome(state=state, attempts=attempts)

    async def close(self) -> None:
        """Close all sources."""
        for source in self._sources:
            await source.close()

    async def __aenter__(self) -> "MultiSourceResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
