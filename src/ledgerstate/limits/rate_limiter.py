"""Fixed-window rate limiter with a per-key cooldown."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Hashable

from ledgerstate.cache.keys import CacheKeys
from ledgerstate.core.models import CacheKey
from ledgerstate.core.types import Clock

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    window_seconds: float = 60.0
    per_key_max: int = 3
    global_max: int = 5
    cooldown_seconds: float = 30.0


@dataclass
class RateWindow:
    """Request count inside one fixed window."""

    key: Hashable
    window_start: float
    count: int = 0

    def expired(self, now: float, window_seconds: float) -> bool:
        return now - self.window_start > window_seconds


@dataclass(frozen=True)
class RateLimitSnapshot:
    """Point-in-time view of the limiter state for one key."""

    key_count: int
    global_count: int
    last_attempt: float | None


class RateLimiter:
    """
    Bounds how often a key may trigger an upstream query.

    Three checks are combined:

    - cooldown: a minimum gap between two attempts for the same key
    - per-key window: at most ``per_key_max`` attempts per window
    - global window: at most ``global_max`` attempts per window for all
      keys of the same resource kind

    Windows are fixed and reset by replacement once their length has
    elapsed. A rejected request is not an error; callers fall back to
    cached data.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._key_windows: dict[Hashable, RateWindow] = {}
        self._global_windows: dict[str, RateWindow] = {}
        self._last_attempt: dict[Hashable, float] = {}
        self._lock = threading.Lock()

    def allow(self, key: CacheKey, *, bypass_window: bool = False) -> bool:
        """
        Decide whether ``key`` may query upstream now.

        Args:
            key: The resource key requesting an upstream query
            bypass_window: Only apply the cooldown (used by force refresh)

        Returns:
            True if the request may proceed
        """
        now = self._clock()
        bucket = CacheKeys.global_bucket(key.kind)

        with self._lock:
            last = self._last_attempt.get(key)
            if last is not None and now - last < self.config.cooldown_seconds:
                logger.debug(f"Cooldown active for {key}: {now - last:.1f}s since last attempt")
                return False

            # Past the cooldown the attempt counts, even if a window rejects it
            self._last_attempt[key] = now

            if bypass_window:
                return True

            key_window = self._current_window(self._key_windows, key, now)
            global_window = self._current_window(self._global_windows, bucket, now)

            if key_window.count >= self.config.per_key_max:
                logger.debug(f"Per-key rate limit reached for {key}")
                return False
            if global_window.count >= self.config.global_max:
                logger.debug(f"Global rate limit reached for {bucket}")
                return False

            key_window.count += 1
            global_window.count += 1
            return True

    def reset(self, key: CacheKey) -> None:
        """Forget the window and cooldown state of one key."""
        with self._lock:
            self._key_windows.pop(key, None)
            self._last_attempt.pop(key, None)

    def snapshot(self, key: CacheKey) -> RateLimitSnapshot:
        now = self._clock()
        bucket = CacheKeys.global_bucket(key.kind)
        with self._lock:
            key_window = self._key_windows.get(key)
            global_window = self._global_windows.get(bucket)
            return RateLimitSnapshot(
                key_count=self._live_count(key_window, now),
                global_count=self._live_count(global_window, now),
                last_attempt=self._last_attempt.get(key),
            )

    def _current_window(
        self,
        windows: dict,
        key: Hashable,
        now: float,
    ) -> RateWindow:
        """Return the live window for ``key``, replacing it if elapsed."""
        window = windows.get(key)
        if window is None or window.expired(now, self.config.window_seconds):
            window = RateWindow(key=key, window_start=now)
            windows[key] = window
        return window

    def _live_count(self, window: RateWindow | None, now: float) -> int:
        if window is None or window.expired(now, self.config.window_seconds):
            return 0
        return window.count
