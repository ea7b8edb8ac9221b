"""HTTP middleware for request ID propagation and per-request context reset.

The middleware:
- Accepts the incoming X-Request-ID header (configurable via
  LOG_REQUEST_ID_HEADER) or generates a UUID
- Stores request_id in contextvars for log correlation
- Starts every request without an authenticated principal
- Adds X-Request-ID and X-Request-Duration-ms to the response

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id
from app.core.session import clear_current_principal


async def request_id_middleware(request: Request, call_next) -> Response:
    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    clear_current_principal()
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()
        clear_current_principal()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
