"""Backpressure and failure isolation primitives."""

from .circuit_breaker import BreakerConfig, CircuitBreaker, CircuitState
from .rate_limiter import RateLimitConfig, RateLimiter, RateLimitSnapshot, RateWindow
from .singleflight import SingleFlight

__all__ = [
    # Circuit breaker
    "BreakerConfig",
    "CircuitBreaker",
    "CircuitState",
    # Rate limiter
    "RateLimitConfig",
    "RateLimiter",
    "RateLimitSnapshot",
    "RateWindow",
    # Single-flight
    "SingleFlight",
]
