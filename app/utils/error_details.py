"""Client-facing error descriptions.

Turns exceptions raised by guarded actions into short messages suitable for
display, including a retry countdown for rate limit failures.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from app.adapters.rate_limit import now_ms as _now_ms
from app.core.errors import AppError, RateLimitExceededError

RATE_LIMIT_CODE = "RATE_LIMIT_EXCEEDED"
UNKNOWN_CODE = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class ClientErrorDetails:
    """User-facing description of an error.

    Attributes:
        message: Text safe to show to the user.
        code: Machine-readable code (error code or exception class name).
        retry_after: Seconds to wait before retrying; rate limits only.
    """

    message: str
    code: str | None = None
    retry_after: int | None = None


def is_rate_limit_error(error: object) -> bool:
    """Whether ``error`` is a rate limit denial."""
    return isinstance(error, RateLimitExceededError)


def get_retry_after(error: object, now_ms: float | None = None) -> int | None:
    """Seconds until a rate limited caller may retry, or None for other errors."""

    if not isinstance(error, RateLimitExceededError):
        return None
    now = _now_ms() if now_ms is None else now_ms
    return max(0, math.ceil((error.reset_at - now) / 1000))


def extract_error_details(error: object, now_ms: float | None = None) -> ClientErrorDetails:
    """Describe ``error`` for display.

    Args:
        error: Anything raised by an action (not necessarily an exception).
        now_ms: Current epoch milliseconds; defaults to the wall clock.

    Returns:
        ClientErrorDetails with message, code and, for rate limits, retry_after.
    """

    if isinstance(error, RateLimitExceededError):
        retry_after = get_retry_after(error, now_ms)
        return ClientErrorDetails(
            message=f"Too many requests. Please try again in {retry_after} seconds.",
            code=RATE_LIMIT_CODE,
            retry_after=retry_after,
        )

    if isinstance(error, AppError):
        return ClientErrorDetails(message=error.message, code=error.code)

    if isinstance(error, Exception):
        return ClientErrorDetails(message=str(error), code=type(error).__name__)

    return ClientErrorDetails(
        message="An unexpected error occurred. Please try again.",
        code=UNKNOWN_CODE,
    )


def format_error_message(error: object) -> str:
    """Display message for ``error``; see ``extract_error_details``."""
    return extract_error_details(error).message
