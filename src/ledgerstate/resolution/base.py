"""Abstract resolution source with timing and reliability tracking."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from pydantic import BaseModel

from ledgerstate.core.models import CollectionState
from ledgerstate.core.types import SourceKind


class SourceConfig(BaseModel):
    """Configuration for a resolution source."""

    timeout: float = 15.0
    enabled: bool = True
    base_confidence: int | None = None


class ResolutionSource(ABC):
    """
    Abstract base class for all resolution sources.

    Provides:
    - Naming and trust ordering (priority)
    - Source-specific base confidence
    - Success/failure and latency tracking
    """

    # Class-level configuration (to be overridden by subclasses)
    SOURCE_KIND: ClassVar[SourceKind]
    BASE_CONFIDENCE: ClassVar[int] = 80
    PRIORITY: ClassVar[int] = 100

    def __init__(
        self,
        config: SourceConfig | None = None,
        *,
        name: str | None = None,
    ) -> None:
        self.config = config or SourceConfig()
        self._name = name or self.SOURCE_KIND.value

        # Reliability tracking
        self._success_count: int = 0
        self._failure_count: int = 0
        self._total_latency_ms: float = 0.0

    @property
    def name(self) -> str:
        return self._name

    @property
    def base_confidence(self) -> int:
        if self.config.base_confidence is not None:
            return self.config.base_confidence
        return self.BASE_CONFIDENCE

    @property
    def priority(self) -> int:
        """Priority for fallback ordering (lower = tried earlier)."""
        return self.PRIORITY

    @property
    def endpoint(self) -> str | None:
        """Endpoint this source talks to, when it is tied to one."""
        return None

    @property
    def timeout(self) -> float:
        return self.config.timeout

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled

    @property
    def success_rate(self) -> float | None:
        total = self._success_count + self._failure_count
        if total == 0:
            return None
        return self._success_count / total

    @property
    def average_latency_ms(self) -> float:
        total = self._success_count + self._failure_count
        return self._total_latency_ms / max(total, 1)

    def record_attempt(self, success: bool, duration_ms: float) -> None:
        self._total_latency_ms += duration_ms
        if success:
            self._success_count += 1
        else:
            self._failure_count += 1

    @abstractmethod
    async def fetch(self, name: str) -> CollectionState | None:
        """
        Fetch the candidate state of a collection.

        Args:
            name: Collection identifier

        Returns:
            The candidate state, or None if the source returned no data

        Raises:
            CollectionNotFoundError: The collection does not exist
            SourceUnavailableError: The source could not answer
        """
        ...

    async def close(self) -> None:
        """Release resources held by the source."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"
