"""Domain models for ledger collection state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .types import AttemptStatus, EventType, ResourceKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheKey(BaseModel):
    """Composite key identifying one tracked resource."""

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind = Field(..., description="Resource kind")
    identifier: str = Field(..., description="Collection identifier")

    def __str__(self) -> str:
        return f"{self.kind}:{self.identifier}"


class CollectionConfig(BaseModel):
    """Static collection configuration supplied by the registry."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Collection name")
    display_name: str | None = Field(default=None, description="Human readable name")
    total_supply: int = Field(..., ge=0, description="Maximum number of items")
    base_price: float = Field(..., ge=0.0, description="Base mint price")
    payment_token: str = Field(..., description="Payment unit symbol")
    is_active: bool = Field(default=False, description="Collection visible and live")
    minting_enabled: bool = Field(default=False, description="Minting allowed")
    is_test_mode: bool = Field(default=False, description="Test-only collection")
    mint_address: str | None = Field(default=None, description="Collection mint account")
    collection_address: str | None = Field(default=None, description="Collection account")
    creator_wallet: str | None = Field(default=None, description="Creator wallet")


class CollectionEvent(BaseModel):
    """An event recorded on the ledger for a collection."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    timestamp: float = Field(..., description="Unix timestamp in seconds")
    signature: str = Field(..., description="Transaction signature")
    wallet_address: str
    token_id: str | None = None
    amount: int | None = None
    price: float | None = None
    phase: str | None = None
    metadata: dict[str, Any] | None = None


class LedgerAccount(BaseModel):
    """An account returned by the ledger query API."""

    address: str = Field(..., description="Account public key")
    owner: str | None = Field(default=None, description="Owning program")
    lamports: int = 0
    data: Any = Field(default=None, description="Raw or parsed account data")

    @property
    def token_owner(self) -> str | None:
        """Wallet owning a token account, when the data came back parsed."""
        if isinstance(self.data, dict):
            info = self.data.get("parsed", {}).get("info", {})
            return info.get("owner")
        return None


class CollectionState(BaseModel):
    """
    Candidate collection state produced by a single source.

    Values are reported as the source saw them and may violate invariants
    such as current supply exceeding total supply.
    """

    name: str
    total_supply: int = 0
    current_supply: int = 0
    mint_price: float = 0.0
    payment_token: str = ""
    is_active: bool = False
    minting_enabled: bool = False
    active_phase: str | None = None
    mint_address: str | None = None
    collection_address: str | None = None
    creator_wallet: str | None = None
    holders: list[str] = Field(default_factory=list)
    recent_events: list[CollectionEvent] = Field(default_factory=list)
    last_mint_time: float = 0.0
    total_volume: float = 0.0
    is_revealed: bool = False
    metadata_uri: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.name or self.total_supply <= 0


class ResolvedState(BaseModel):
    """Externally visible, scored and clamped collection state."""

    model_config = ConfigDict(frozen=True)

    name: str
    total_supply: int = Field(..., ge=0)
    current_supply: int = Field(..., ge=0)
    mint_price: float
    payment_token: str
    is_active: bool
    minting_enabled: bool
    active_phase: str | None = None
    mint_address: str | None = None
    collection_address: str | None = None
    holders: list[str] = Field(default_factory=list)
    recent_events: list[CollectionEvent] = Field(default_factory=list)
    last_mint_time: float = 0.0
    total_volume: float = 0.0
    is_revealed: bool = False
    source: str = Field(..., description="Name of the source that produced the state")
    confidence: int = Field(..., ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)
    resolved_at: datetime = Field(default_factory=_utcnow)
    stale: bool = Field(default=False, description="Served from an expired cache record")

    @property
    def remaining_supply(self) -> int:
        return self.total_supply - self.current_supply

    @property
    def sold_out(self) -> bool:
        return self.current_supply >= self.total_supply

    @classmethod
    def from_candidate(
        cls,
        candidate: CollectionState,
        *,
        source: str,
        confidence: int,
        warnings: list[str],
    ) -> ResolvedState:
        """Build a resolved state, clamping current supply into [0, total]."""
        warnings = list(warnings)
        total = max(0, candidate.total_supply)
        current = min(max(candidate.current_supply, 0), total)
        if current != candidate.current_supply:
            warnings.append(
                f"current supply {candidate.current_supply} clamped to {current}"
            )

        return cls(
            name=candidate.name,
            total_supply=total,
            current_supply=current,
            mint_price=candidate.mint_price,
            payment_token=candidate.payment_token,
            is_active=candidate.is_active,
            minting_enabled=candidate.minting_enabled,
            active_phase=candidate.active_phase,
            mint_address=candidate.mint_address,
            collection_address=candidate.collection_address,
            holders=list(candidate.holders),
            recent_events=list(candidate.recent_events),
            last_mint_time=candidate.last_mint_time,
            total_volume=candidate.total_volume,
            is_revealed=candidate.is_revealed,
            source=source,
            confidence=confidence,
            warnings=warnings,
        )


class SourceAttempt(BaseModel):
    """Record of one source attempt during a resolution."""

    source: str
    status: AttemptStatus
    endpoint: str | None = None
    confidence: int | None = None
    warnings: list[str] = Field(default_factory=list)
    error_message: str | None = None
    duration_ms: float = 0.0

    @property
    def reason(self) -> str:
        """Short human readable reason for this attempt's outcome."""
        if self.error_message:
            return self.error_message
        if self.confidence is not None:
            return f"confidence {self.confidence}"
        return str(self.status)


class SystemHealth(BaseModel):
    """Snapshot of engine health."""

    status: Literal["healthy", "degraded", "unhealthy"]
    sources: list[str] = Field(default_factory=list, description="Enabled sources in trust order")
    positive_entries: int = 0
    negative_entries: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    open_circuits: list[str] = Field(default_factory=list)
    in_flight: list[str] = Field(default_factory=list)
