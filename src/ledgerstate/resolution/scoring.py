"""Confidence scoring for candidate collection states."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from ledgerstate.core.exceptions import LedgerStateError
from ledgerstate.core.models import CacheKey, CollectionState

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100


class SupplyVerifier(Protocol):
    """Independent supply scan used for cross-verification."""

    async def scan_supply(self, mint_address: str) -> int: ...


@dataclass(frozen=True)
class ConfidenceRule:
    """A named sanity check that adjusts confidence when its predicate holds."""

    name: str
    predicate: Callable[[CollectionState | None], bool]
    delta: int
    warning: str

    def applies(self, candidate: CollectionState | None) -> bool:
        return self.predicate(candidate)


NO_DATA = ConfidenceRule(
    name="no_data",
    predicate=lambda c: c is None or c.is_empty,
    delta=-50,
    warning="no data returned",
)
SUPPLY_EXCEEDS_TOTAL = ConfidenceRule(
    name="supply_exceeds_total",
    predicate=lambda c: c is not None and c.current_supply > c.total_supply,
    delta=-30,
    warning="current supply exceeds total supply",
)
NEGATIVE_SUPPLY = ConfidenceRule(
    name="negative_supply",
    predicate=lambda c: c is not None and c.current_supply < 0,
    delta=-40,
    warning="negative current supply detected",
)

DEFAULT_RULES: tuple[ConfidenceRule, ...] = (
    NO_DATA,
    SUPPLY_EXCEEDS_TOTAL,
    NEGATIVE_SUPPLY,
)


@dataclass
class ScoreResult:
    """Confidence and warnings computed for one candidate."""

    confidence: int
    warnings: list[str] = field(default_factory=list)
    applied_rules: list[str] = field(default_factory=list)
    cross_verified: bool = False


def clamp(confidence: int) -> int:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


class ConfidenceScorer:
    """
    Scores a candidate by applying rules to a source's base confidence.

    When the running score falls below ``cross_verify_below`` and the
    candidate has a mint address, one independent supply scan is made:
    agreement within ``tolerance`` adds ``agreement_boost``, disagreement
    subtracts ``mismatch_penalty``. A failed scan leaves the score unchanged
    and adds a warning. The final score is clamped to [0, 100].
    """

    def __init__(
        self,
        rules: tuple[ConfidenceRule, ...] | list[ConfidenceRule] = DEFAULT_RULES,
        *,
        verifier: SupplyVerifier | None = None,
        cross_verify_below: int = 70,
        tolerance: int = 1,
        agreement_boost: int = 20,
        mismatch_penalty: int = 25,
        scan_timeout: float = 15.0,
    ) -> None:
        self.rules = tuple(rules)
        self.verifier = verifier
        self.cross_verify_below = cross_verify_below
        self.tolerance = tolerance
        self.agreement_boost = agreement_boost
        self.mismatch_penalty = mismatch_penalty
        self.scan_timeout = scan_timeout

    async def score(
        self,
        candidate: CollectionState | None,
        key: CacheKey,
        base_confidence: int,
    ) -> ScoreResult:
        result = ScoreResult(confidence=base_confidence)

        for rule in self.rules:
            if rule.applies(candidate):
                result.confidence += rule.delta
                result.warnings.append(rule.warning)
                result.applied_rules.append(rule.name)

        if (
            result.confidence < self.cross_verify_below
            and candidate is not None
            and candidate.mint_address
            and self.verifier is not None
        ):
            await self._cross_verify(candidate, key, result)

        result.confidence = clamp(result.confidence)
        return result

    async def _cross_verify(
        self,
        candidate: CollectionState,
        key: CacheKey,
        result: ScoreResult,
    ) -> None:
        logger.info(f"Low confidence ({result.confidence}) for {key}, cross-verifying supply")
        try:
            async with asyncio.timeout(self.scan_timeout):
                direct_supply = await self.verifier.scan_supply(candidate.mint_address)
        except (LedgerStateError, TimeoutError) as e:
            logger.warning(f"Cross-verification scan failed for {key}: {e!r}")
            result.warnings.append(f"cross-verification failed: {e}")
            return
        except Exception as e:
            logger.exception(f"Cross-verification scan errored for {key}: {e}")
            result.warnings.append(f"cross-verification failed: {str(e) or type(e).__name__}")
            return

        result.cross_verified = True
        if abs(direct_supply - candidate.current_supply) <= self.tolerance:
            result.confidence += self.agreement_boost
        else:
            result.confidence -= self.mismatch_penalty
            result.warnings.append(
                f"supply mismatch: source={candidate.current_supply}, direct={direct_supply}"
            )
