"""Rate limit storage adapters.

This package keeps the counting state behind a small abstraction so the
service can start with an in-memory store and later move to Redis or another
shared backend without changing the limiter or the HTTP layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitConfig,
    RateLimitResult,
    now_ms,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore

__all__ = [
    "AbstractRateLimitStore",
    "InMemoryRateLimitStore",
    "RateLimitConfig",
    "RateLimitResult",
    "now_ms",
]
