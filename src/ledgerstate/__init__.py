"""Ledgerstate - Cached, rate-limited, multi-source resolution of on-ledger collection state."""

from ledgerstate.client import LedgerStateClient, resolve_collection_state
from ledgerstate.collaborators import FlatPricing, StaticCollectionRegistry
from ledgerstate.config import LedgerStateSettings
from ledgerstate.core.exceptions import (
    CollectionNotFoundError,
    LedgerStateError,
    LowConfidenceError,
    ResolutionError,
    SourcesExhaustedError,
)
from ledgerstate.core.models import (
    CollectionConfig,
    CollectionEvent,
    ResolvedState,
    SystemHealth,
)
from ledgerstate.engine import ResolutionEngine

__version__ = "0.1.0"
__all__ = [
    # Client
    "LedgerStateClient",
    "ResolutionEngine",
    "resolve_collection_state",
    # Collaborators
    "FlatPricing",
    "StaticCollectionRegistry",
    # Config
    "LedgerStateSettings",
    # Models
    "CollectionConfig",
    "CollectionEvent",
    "ResolvedState",
    "SystemHealth",
    # Exceptions
    "CollectionNotFoundError",
    "LedgerStateError",
    "LowConfidenceError",
    "ResolutionError",
    "SourcesExhaustedError",
    # Version
    "__version__",
]
