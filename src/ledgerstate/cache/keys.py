"""Cache key builders for consistent key formatting."""

from ledgerstate.core.models import CacheKey
from ledgerstate.core.types import ResourceKind


class CacheKeys:
    """Cache key builders for consistent key formatting."""

    PREFIX = "ledgerstate"

    @classmethod
    def collection_state(cls, name: str) -> CacheKey:
        """Key for the resolved state of a collection."""
        return CacheKey(kind=ResourceKind.COLLECTION_STATE, identifier=name.strip())

    @classmethod
    def global_bucket(cls, kind: ResourceKind | str) -> str:
        """Rate limit bucket shared by every key of one resource kind."""
        return f"{cls.PREFIX}:global:{kind}"

    @classmethod
    def flight(cls, key: CacheKey, namespace: str = "resolve") -> str:
        """Single-flight group name for a key."""
        return f"{cls.PREFIX}:{namespace}:{key}"
