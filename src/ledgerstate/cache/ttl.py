"""In-memory TTL cache with separate positive and negative expiry classes."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Hashable

from ledgerstate.core.types import CacheClass, Clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheRecord:
    """A cached value and the class that decides its lifetime."""

    value: Any
    classification: CacheClass
    created_at: float


@dataclass
class CacheStats:
    """Counters exposed for health reporting."""

    positive_entries: int = 0
    negative_entries: int = 0
    hits: int = 0
    misses: int = 0


class TTLCache:
    """
    Key/value store with two independent expiry classes.

    Positive records hold resolved values, negative records remember that a
    resource does not exist. Negative records live longer: a missing
    collection is expensive to look up and rarely appears.

    Expiry is lazy: expired records are reported as misses but stay in the
    map until overwritten or cleared, so ``peek`` can still serve them.
    """

    def __init__(
        self,
        positive_ttl: float = 300.0,
        negative_ttl: float = 600.0,
        *,
        max_entries_per_class: int | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        if negative_ttl <= positive_ttl:
            raise ValueError("negative_ttl must be longer than positive_ttl")

        self._ttls = {
            CacheClass.POSITIVE: positive_ttl,
            CacheClass.NEGATIVE: negative_ttl,
        }
        self._max_entries = max_entries_per_class
        self._clock = clock
        self._records: dict[Hashable, CacheRecord] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def ttl_for(self, classification: CacheClass) -> float:
        """TTL in seconds for a classification."""
        return self._ttls[classification]

    def get(self, key: Hashable) -> tuple[Any, bool]:
        """Return ``(value, hit)``; expired records count as misses."""
        now = self._clock()
        with self._lock:
            record = self._records.get(key)
            if record is None or now - record.created_at >= self._ttls[record.classification]:
                self._misses += 1
                return None, False
            self._hits += 1
            return record.value, True

    def get_record(self, key: Hashable) -> CacheRecord | None:
        """Return the live record for ``key``, or None if missing or expired."""
        now = self._clock()
        with self._lock:
            record = self._records.get(key)
            if record is None or now - record.created_at >= self._ttls[record.classification]:
                return None
            return record

    def peek(self, key: Hashable) -> CacheRecord | None:
        """Return the stored record regardless of expiry."""
        with self._lock:
            return self._records.get(key)

    def set(
        self,
        key: Hashable,
        value: Any,
        classification: CacheClass = CacheClass.POSITIVE,
    ) -> CacheRecord:
        """Store ``value`` under ``key``, replacing any previous record."""
        record = CacheRecord(
            value=value,
            classification=classification,
            created_at=self._clock(),
        )
        with self._lock:
            self._records[key] = record
            if self._max_entries is not None:
                self._evict(classification)
        return record

    def restore(self, key: Hashable, record: CacheRecord) -> None:
        """Put back a record obtained from ``peek``, keeping its age. Newer records win."""
        with self._lock:
            self._records.setdefault(key, record)

    def clear_key(self, key: Hashable) -> bool:
        """Remove one key. Returns True if it was present."""
        with self._lock:
            return self._records.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every record."""
        with self._lock:
            self._records.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            positive = sum(
                1 for r in self._records.values() if r.classification == CacheClass.POSITIVE
            )
            return CacheStats(
                positive_entries=positive,
                negative_entries=len(self._records) - positive,
                hits=self._hits,
                misses=self._misses,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, key: Hashable) -> bool:
        return self.get_record(key) is not None

    def _evict(self, classification: CacheClass) -> None:
        """Drop the oldest records of one class until it fits. Caller holds the lock."""
        same_class = [
            (record.created_at, key)
            for key, record in self._records.items()
            if record.classification == classification
        ]
        overflow = len(same_class) - self._max_entries
        if overflow <= 0:
            return

        same_class.sort(key=lambda item: item[0])
        for _, key in same_class[:overflow]:
            del self._records[key]
            logger.debug(f"Evicted {classification} cache record: {key}")
