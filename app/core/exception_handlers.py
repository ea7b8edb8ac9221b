"""Global exception handlers for consistent error responses.

FastAPI handlers that translate domain errors into JSON responses with the
right HTTP status code and the request id for traceability.

Design:
- AppError → 400
- AuthenticationAppError → 401
- RateLimitExceededError → 429 with Retry-After / X-RateLimit-* headers
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.adapters.rate_limit import now_ms
from app.core.config import settings
from app.core.errors import AppError, AuthenticationAppError, RateLimitExceededError
from app.core.logging import get_request_id
from app.utils.error_details import extract_error_details

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, RateLimitExceededError):
        return 429
    if isinstance(exc, AuthenticationAppError):
        return 401
    return 400


def _rate_limit_headers(exc: RateLimitExceededError, retry_after: int) -> dict[str, str]:
    if not settings.app.rate_limit_include_headers:
        return {}
    return {
        "Retry-After": str(retry_after),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": str(exc.reset_at // 1000),
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as ``{"error": {code, message, request_id, details?}}``.

    Rate limit errors get a user-facing countdown message and ``retry_after``.
    """
    status_code = _status_for(exc)
    headers: dict[str, str] = {}

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    if isinstance(exc, RateLimitExceededError):
        client_details = extract_error_details(exc, now_ms())
        retry_after = client_details.retry_after or 0
        error_content["message"] = client_details.message
        error_content["retry_after"] = retry_after
        headers = _rate_limit_headers(exc, retry_after)

    if exc.details:
        error_content["details"] = exc.details

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for unexpected errors. Never leaks exception text to clients."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
