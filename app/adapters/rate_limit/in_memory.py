"""In-memory fixed-window rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock guards the check-then-increment sequence.
- Expiry is lazy: an entry is dropped on the first access after its window
  closed. Use ``max_entries`` or a periodic ``sweep_expired()`` call when many
  distinct, never-repeating identifiers are expected.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitConfig,
    RateLimitResult,
    now_ms,
)

logger = logging.getLogger(__name__)


@dataclass
class RequestLog:
    count: int
    reset_at: int


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Fixed-window counters keyed by identifier.

    A window opens on the first request for an identifier and closes
    ``window_ms`` later. ``reset_at`` is never extended mid-window, so up to
    twice the limit can be admitted across a window boundary.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = now_ms,
        max_entries: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning UNIX time in milliseconds.
            max_entries: Optional upper bound on tracked identifiers. When a
                new identifier would exceed it, expired entries are swept and
                then the entry closest to its reset is evicted.

        Raises:
            ValueError: If max_entries is lower than 1.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._clock = clock
        self._max_entries = max_entries
        self._lock = threading.RLock()
        self._logs: dict[str, RequestLog] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._logs)

    def _make_room(self, now: int) -> None:
        """Keep the map under ``max_entries`` before inserting a new key."""
        if self._max_entries is None or len(self._logs) < self._max_entries:
            return

        self._sweep(now)
        while len(self._logs) >= self._max_entries:
            oldest = min(self._logs, key=lambda k: self._logs[k].reset_at)
            del self._logs[oldest]
            logger.debug(
                "rate_limit.store.evicted",
                extra={"max_entries": self._max_entries, "size": len(self._logs)},
            )

    def _sweep(self, now: int) -> int:
        expired = [key for key, log in self._logs.items() if log.reset_at <= now]
        for key in expired:
            del self._logs[key]
        return len(expired)

    def check_and_increment(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Check the identifier's window and count the request when allowed.

        Args:
            identifier: Non-empty rate limit key.
            config: Policy to apply.

        Returns:
            RateLimitResult with the decision and the window's reset time.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        with self._lock:
            now = int(self._clock())

            current = self._logs.get(identifier)
            if current is not None and current.reset_at <= now:
                del self._logs[identifier]
                current = None

            if current is None:
                self._make_room(now)
                current = RequestLog(count=1, reset_at=now + config.window_ms)
                self._logs[identifier] = current
                return RateLimitResult(
                    is_allowed=True,
                    limit=config.max_requests,
                    remaining=config.max_requests - 1,
                    reset_at=current.reset_at,
                )

            if current.count < config.max_requests:
                current.count += 1
                return RateLimitResult(
                    is_allowed=True,
                    limit=config.max_requests,
                    remaining=max(0, config.max_requests - current.count),
                    reset_at=current.reset_at,
                )

            return RateLimitResult(
                is_allowed=False,
                limit=config.max_requests,
                remaining=0,
                reset_at=current.reset_at,
            )

    def current_time_ms(self) -> float:
        return self._clock()

    def sweep_expired(self) -> int:
        """Remove every entry whose window has closed.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            removed = self._sweep(int(self._clock()))
        if removed:
            logger.debug("rate_limit.store.swept", extra={"removed": removed})
        return removed

    def clear(self) -> None:
        with self._lock:
            self._logs.clear()
