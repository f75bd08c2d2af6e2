"""Resolution layer: sources, scoring, and the fallback chain."""

from ledgerstate.resolution.base import ResolutionSource, SourceConfig
from ledgerstate.resolution.chain import (
    FallbackConfig,
    MultiSourceResolver,
    ResolutionOutcome,
)
from ledgerstate.resolution.registry import SourceRegistry
from ledgerstate.resolution.scoring import (
    DEFAULT_RULES,
    ConfidenceRule,
    ConfidenceScorer,
    ScoreResult,
)
from ledgerstate.resolution.sources import (
    AggregatorSource,
    DirectScanSource,
    FallbackEndpointSource,
)

__all__ = [
    # Base
    "ResolutionSource",
    "SourceConfig",
    # Sources
    "AggregatorSource",
    "DirectScanSource",
    "FallbackEndpointSource",
    # Scoring
    "DEFAULT_RULES",
    "ConfidenceRule",
    "ConfidenceScorer",
    "ScoreResult",
    # Chain
    "FallbackConfig",
    "MultiSourceResolver",
    "ResolutionOutcome",
    # Registry
    "SourceRegistry",
]
