"""Core types, models, and exceptions."""

from .exceptions import (
    CollectionNotFoundError,
    LedgerStateError,
    LedgerUnavailableError,
    LowConfidenceError,
    ResolutionError,
    SourcesExhaustedError,
    SourceUnavailableError,
    ThrottledError,
)
from .models import (
    CacheKey,
    CollectionConfig,
    CollectionEvent,
    CollectionState,
    LedgerAccount,
    ResolvedState,
    SourceAttempt,
    SystemHealth,
)
from .types import (
    AttemptStatus,
    CacheClass,
    CircuitStatus,
    Clock,
    EventType,
    ResourceKind,
    SourceKind,
)

__all__ = [
    # Types
    "AttemptStatus",
    "CacheClass",
    "CircuitStatus",
    "Clock",
    "EventType",
    "ResourceKind",
    "SourceKind",
    # Models
    "CacheKey",
    "CollectionConfig",
    "CollectionEvent",
    "CollectionState",
    "LedgerAccount",
    "ResolvedState",
    "SourceAttempt",
    "SystemHealth",
    # Exceptions
    "CollectionNotFoundError",
    "LedgerStateError",
    "LedgerUnavailableError",
    "LowConfidenceError",
    "ResolutionError",
    "SourcesExhaustedError",
    "SourceUnavailableError",
    "ThrottledError",
]
