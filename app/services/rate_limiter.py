"""Per-policy rate limiter bound to a shared store.

A ``RateLimiter`` pairs one fixed ``RateLimitConfig`` with a store and offers
two ways to consult it:

- ``check()`` fails fast with ``RateLimitExceededError``.
- ``check_with_result()`` returns the full decision for callers that prefer
  explicit branching (e.g. building a structured response).

Callers sharing a store under different policies must namespace their
identifiers (``"create:{user_id}"``), since counts are keyed by identifier only.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import Callable

from app.adapters.rate_limit import (
    AbstractRateLimitStore,
    InMemoryRateLimitStore,
    RateLimitConfig,
    RateLimitResult,
)
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS


class RateLimitPresets:
    """Common policies."""

    STRICT = RateLimitConfig(max_requests=5, window_ms=_MINUTE_MS)
    MODERATE = RateLimitConfig(max_requests=10, window_ms=_MINUTE_MS)
    RELAXED = RateLimitConfig(max_requests=30, window_ms=_MINUTE_MS)
    HOURLY = RateLimitConfig(max_requests=100, window_ms=_HOUR_MS)


_default_store: AbstractRateLimitStore | None = None
_default_store_lock = threading.Lock()


def set_rate_limit_store(store: AbstractRateLimitStore) -> None:
    """Install the process-wide store (called by the composition root)."""

    global _default_store
    with _default_store_lock:
        _default_store = store


def get_rate_limit_store() -> AbstractRateLimitStore:
    """Return the process-wide store, creating an in-memory one if none is installed."""

    global _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = InMemoryRateLimitStore()
        return _default_store


def clear_rate_limit_store() -> None:
    """Reset the process-wide store. Meant for tests."""

    get_rate_limit_store().clear()


def hash_identifier(identifier: str) -> str:
    """Hash a rate limit identifier for logging without exposing it."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


class RateLimiter:
    """Facade applying one fixed policy against a store."""

    def __init__(
        self,
        config: RateLimitConfig,
        *,
        store: AbstractRateLimitStore | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            config: Policy applied on every check.
            store: Backing store. When omitted, the process-wide store is
                looked up on every check, so a store installed later by the
                composition root is picked up.
            clock: Time source (epoch ms) for the retry countdown; defaults
                to the store's own clock.
        """
        self._config = config
        self._injected_store = store
        self._clock = clock

    @property
    def _store(self) -> AbstractRateLimitStore:
        if self._injected_store is not None:
            return self._injected_store
        return get_rate_limit_store()

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return self._store.current_time_ms()

    async def check_with_result(self, identifier: str) -> RateLimitResult:
        """Check and count a request without raising on denial."""

        result = self._store.check_and_increment(identifier, self._config)
        if result.is_allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "key_hash": hash_identifier(identifier),
                    "limit": result.limit,
                    "remaining": result.remaining,
                    "window_ms": self._config.window_ms,
                },
            )
        return result

    async def check(self, identifier: str) -> None:
        """Check and count a request.

        Raises:
            RateLimitExceededError: When the identifier exhausted its window.
        """

        result = await self.check_with_result(identifier)
        if result.is_allowed:
            return

        retry_after = result.retry_after_seconds(self._now())
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_hash": hash_identifier(identifier),
                "limit": result.limit,
                "window_ms": self._config.window_ms,
                "retry_after_s": retry_after,
            },
        )
        raise RateLimitExceededError(
            f"Rate limit exceeded. Try again in {retry_after} seconds.",
            reset_at=result.reset_at,
            limit=result.limit,
        )


def create_rate_limiter(
    config: RateLimitConfig,
    *,
    store: AbstractRateLimitStore | None = None,
    clock: Callable[[], float] | None = None,
) -> RateLimiter:
    """Build a limiter for ``config``.

    Example:
        >>> limiter = create_rate_limiter(RateLimitPresets.MODERATE)
        >>> async def rename(user_id: str) -> None:
        ...     await limiter.check(f"rename:{user_id}")
    """

    return RateLimiter(config, store=store, clock=clock)
