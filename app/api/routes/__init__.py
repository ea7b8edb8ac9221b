from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.session import router as session_router

__all__ = ["health_router", "session_router"]
