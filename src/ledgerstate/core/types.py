"""Core enums and type definitions."""

from collections.abc import Callable
from enum import StrEnum

# Monotonic time source in seconds. Injected everywhere time matters.
Clock = Callable[[], float]


class ResourceKind(StrEnum):
    """Kinds of ledger resources the engine can resolve."""

    COLLECTION_STATE = "collection_state"
    # Future extensions:
    # HOLDER_SNAPSHOT = "holder_snapshot"


class CacheClass(StrEnum):
    """Expiry class of a cache record."""

    POSITIVE = "positive"
    NEGATIVE = "negative"


class CircuitStatus(StrEnum):
    """States of a per-key circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class SourceKind(StrEnum):
    """Families of resolution sources, in default trust order."""

    AGGREGATOR = "aggregator"
    DIRECT_SCAN = "direct-scan"
    FALLBACK_ENDPOINT = "fallback-endpoint"


class AttemptStatus(StrEnum):
    """Outcome of a single source attempt."""

    ACCEPTED = "accepted"
    CANDIDATE = "candidate"
    LOW_CONFIDENCE = "low_confidence"
    TIMEOUT = "timeout"
    ERROR = "error"


class EventType(StrEnum):
    """Types of collection events recorded on the ledger."""

    MINT = "mint"
    TRANSFER = "transfer"
    BURN = "burn"
    REVEAL = "reveal"
    PHASE_CHANGE = "phase_change"
