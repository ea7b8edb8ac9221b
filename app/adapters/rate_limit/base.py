"""Rate limit store interfaces.

Callers depend on this abstraction (not the concrete implementation) so the
in-memory store can later be replaced by a shared backend (e.g. an atomic
increment-with-expiry counter in Redis) without changing the result shape or
the allow/deny semantics.
"""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


def now_ms() -> int:
    """Current UNIX time in milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitConfig:
    """Policy applied by a limiter.

    Attributes:
        max_requests: Maximum number of requests admitted per window.
        window_ms: Window length in milliseconds.

    Raises:
        ValueError: If either value is lower than 1.
    """

    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Snapshot of a single check-and-increment decision.

    Attributes:
        is_allowed: Whether the request may proceed.
        limit: Configured max requests per window.
        remaining: Requests left in the current window (0 when denied).
        reset_at: Epoch milliseconds at which the current window closes.
    """

    is_allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def retry_after_seconds(self, now_ms: float) -> int:
        """Whole seconds until the window resets, never negative."""
        return max(0, math.ceil((self.reset_at - now_ms) / 1000))


class AbstractRateLimitStore(ABC):
    """Interface for identifier-keyed fixed-window counters."""

    @abstractmethod
    def check_and_increment(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Decide admission for ``identifier`` and record it when allowed.

        Args:
            identifier: Caller-chosen key (user id, IP, namespaced string).
            config: Policy to apply for this call.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Drop all tracked identifiers."""
        raise NotImplementedError

    def current_time_ms(self) -> float:
        """Epoch milliseconds as seen by this store.

        Limiters compute retry countdowns from it so they agree with the
        store's window boundaries.
        """
        return now_ms()
