from __future__ import annotations

from collections.abc import Sized

from fastapi import APIRouter, Request

from app.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, with a summary of rate limiter state.

    ``tracked_identifiers`` is only reported for stores that can count entries.
    """

    store = getattr(request.app.state, "rate_limit_store", None)
    rate_limit: dict = {"enabled": settings.app.rate_limit_enabled}
    if isinstance(store, Sized):
        rate_limit["tracked_identifiers"] = len(store)

    return {"status": "ok", "rate_limit": rate_limit}
