"""Custom exception hierarchy for ledgerstate."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ledgerstate.core.models import ResolvedState, SourceAttempt


class LedgerStateError(Exception):
    """Base exception for all ledgerstate errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CollectionNotFoundError(LedgerStateError):
    """The requested collection does not exist."""

    def __init__(
        self,
        name: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Collection not found: {name}", details)
        self.name = name


class ThrottledError(LedgerStateError):
    """Upstream call suppressed by the rate limiter or circuit breaker."""

    def __init__(
        self,
        message: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.reason = reason


class SourceUnavailableError(LedgerStateError):
    """A single resolution source failed or timed out."""

    def __init__(
        self,
        message: str,
        source: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source


class LedgerUnavailableError(SourceUnavailableError):
    """Ledger RPC endpoint is unreachable or returned an error."""

    def __init__(
        self,
        message: str,
        source: str,
        status_code: int | None = None,
        rpc_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, source, details)
        self.status_code = status_code
        self.rpc_code = rpc_code


class ResolutionError(LedgerStateError):
    """Every source was tried and none produced an acceptable state."""

    def __init__(
        self,
        message: str,
        attempts: list[SourceAttempt] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.attempts = attempts or []
        # Set by the engine when a cached value exists for the key.
        self.stale_state: ResolvedState | None = None

    @property
    def reasons(self) -> dict[str, str]:
        """Failure reason per attempted source."""
        return {a.source: a.reason for a in self.attempts}


class SourcesExhaustedError(ResolutionError):
    """All sources failed without returning data."""

    pass


class LowConfidenceError(ResolutionError):
    """Sources returned data but none cleared the minimum confidence."""

    pass
