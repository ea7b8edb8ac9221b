"""Application factory for the FastAPI app.

This is the composition root: it owns the rate limit store for the lifetime
of the application and installs it as the process-wide default used by
limiters and guarded actions.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.adapters.rate_limit import AbstractRateLimitStore, InMemoryRateLimitStore
from app.api.routes import health_router, session_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.services.rate_limiter import set_rate_limit_store


def create_app(store: AbstractRateLimitStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Rate limit store to install; a new in-memory store when omitted.

    Returns:
        Configured app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Application Tracker API",
        description=(
            "Server-side actions for tracking job applications. Mutating "
            "actions are rate limited per authenticated user; throttled calls "
            "return 429 with Retry-After."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    if store is None:
        store = InMemoryRateLimitStore(max_entries=settings.app.rate_limit_max_entries)
    app.state.rate_limit_store = store
    set_rate_limit_store(store)

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)
    app.include_router(session_router, prefix="/v1")
    app.include_router(health_router)

    return app
