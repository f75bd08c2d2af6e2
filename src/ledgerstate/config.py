"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerStateSettings(BaseSettings):
    """Engine configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="LEDGERSTATE_",
    )

    # Ledger endpoints
    rpc_url: str = Field(
        default="https://rpc.analos.io",
        description="Primary ledger JSON-RPC endpoint",
    )
    fallback_rpc_urls: list[str] = Field(
        default_factory=lambda: [
            "https://analos.drpc.org",
            "https://api.analos.com",
        ],
        description="Fallback ledger endpoints, tried in order",
    )
    rpc_timeout: float = Field(
        default=15.0,
        gt=0.0,
        description="HTTP timeout for ledger RPC calls in seconds",
    )
    token_program_id: str = Field(
        default="TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
        description="Program owning collection token accounts",
    )

    # Cache
    positive_ttl: float = Field(
        default=300.0,
        gt=0.0,
        description="TTL for resolved states in seconds",
    )
    negative_ttl: float = Field(
        default=600.0,
        gt=0.0,
        description="TTL for not-found records in seconds",
    )
    cache_max_entries: int | None = Field(
        default=None,
        ge=1,
        description="Optional per-class entry bound",
    )

    # Rate limiting
    rate_limit_window: float = Field(
        default=60.0,
        gt=0.0,
        description="Fixed rate limit window in seconds",
    )
    rate_limit_per_key_max: int = Field(
        default=3,
        ge=1,
        description="Upstream queries allowed per key per window",
    )
    rate_limit_global_max: int = Field(
        default=5,
        ge=1,
        description="Upstream queries allowed per resource kind per window",
    )
    rate_limit_cooldown: float = Field(
        default=30.0,
        ge=0.0,
        description="Minimum gap between upstream queries for one key",
    )

    # Circuit breaker
    breaker_failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive failed resolutions before the circuit opens",
    )
    breaker_cooldown: float = Field(
        default=600.0,
        gt=0.0,
        description="Seconds an open circuit rejects attempts",
    )

    # Resolution
    source_timeout: float = Field(
        default=15.0,
        gt=0.0,
        description="Timeout for a single source attempt",
    )
    scan_timeout: float = Field(
        default=15.0,
        gt=0.0,
        description="Timeout for the cross-verification scan",
    )
    resolution_total_timeout: float = Field(
        default=60.0,
        gt=0.0,
        description="Timeout for the whole source chain",
    )
    accept_confidence: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Confidence at which a source is accepted immediately",
    )
    min_confidence: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Lowest confidence a state may be returned with",
    )
    cross_verify_below: int = Field(
        default=70,
        ge=0,
        le=100,
        description="Confidence below which candidates are cross-verified",
    )
    supply_tolerance: int = Field(
        default=1,
        ge=0,
        description="Allowed supply difference during cross-verification",
    )

    # App settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @model_validator(mode="after")
    def _check_invariants(self) -> "LedgerStateSettings":
        if self.negative_ttl <= self.positive_ttl:
            raise ValueError("negative_ttl must be longer than positive_ttl")
        if self.min_confidence > self.accept_confidence:
            raise ValueError("min_confidence must not exceed accept_confidence")
        return self


@lru_cache
def get_settings() -> LedgerStateSettings:
    """Get cached settings instance."""
    return LedgerStateSettings()
