"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep the shape stable while letting each error
    carry only what is relevant to it.
    """

    code: str
    message: str
    hint: str
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class AuthenticationAppError(AppError):
    """Raised when no authenticated principal can be established."""


class RateLimitExceededError(AppError):
    """Raised when a limiter denies a request.

    Recoverable: the caller may retry once ``reset_at`` has passed.

    Attributes:
        reset_at: Epoch milliseconds at which the window clears.
        limit: Configured max requests per window.
    """

    def __init__(self, message: str, *, reset_at: int, limit: int) -> None:
        self.reset_at = reset_at
        self.limit = limit
        super().__init__(
            code="rate_limit_exceeded",
            message=message,
            details={"limit": limit, "remaining": 0, "reset_at": reset_at},
        )
