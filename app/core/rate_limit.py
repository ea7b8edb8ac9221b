"""Rate limiting dependency for FastAPI routes.

This module wires the limiter into the HTTP layer.

Strategy:
- Fixed-window limit per authenticated principal (``user:{id}``).
- Without a principal (route not behind auth, or auth disabled), fall back
  to client IP.
- Disabled unless ``APP_RATE_LIMIT_ENABLED`` is true.

List it after ``verify_api_key`` so the principal is already bound::

    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit)]
"""

from __future__ import annotations

import logging

from fastapi import Request

from app.adapters.rate_limit import RateLimitConfig
from app.core.auth import ANONYMOUS_PRINCIPAL
from app.core.config import settings
from app.core.session import get_current_principal
from app.services.rate_limiter import RateLimiter, create_rate_limiter

logger = logging.getLogger(__name__)


_limiter: RateLimiter | None = None
_limiter_config: RateLimitConfig | None = None


def get_http_rate_limiter() -> RateLimiter:
    """Return the limiter used by HTTP routes.

    Cached in-module and rebuilt when the configured policy changes
    (primarily in tests). The limiter resolves the process-wide store on each
    check, so it always counts in the store installed by ``create_app``.
    """

    global _limiter, _limiter_config

    config = RateLimitConfig(
        max_requests=settings.app.rate_limit_max_requests,
        window_ms=settings.app.rate_limit_window_ms,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = create_rate_limiter(config)
        _limiter_config = config

    return _limiter


def build_rate_limit_key(request: Request) -> str:
    """Key the request by principal, or by client address when anonymous."""

    principal = get_current_principal()
    if principal and principal != ANONYMOUS_PRINCIPAL:
        return f"user:{principal}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the configured rate limit.

    Raises:
        RateLimitExceededError: When the caller exceeded the window (rendered as 429).
    """

    if not settings.app.rate_limit_enabled:
        return

    await get_http_rate_limiter().check(build_rate_limit_key(request))
