"""API key authentication that establishes the request principal.

Keys are configured as a comma-separated list in ``APP_API_KEYS``. Each entry
may bind a principal id with ``key:principal_id``; a bare key gets a stable
principal derived from its hash. On success the principal is stored in the
ambient session so rate limiting can key on it.

Design principles:
- Pure validation logic (``validate_api_key``) kept apart from the FastAPI
  dependency for easy testing
- Configuration-driven: keys managed via env vars, not hardcoded
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError
from app.core.session import set_current_principal

logger = logging.getLogger(__name__)

ANONYMOUS_PRINCIPAL = "anonymous"


def _key_hash(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def parse_api_keys(keys_string: str | None) -> dict[str, str]:
    """Parse configured API keys into a key -> principal mapping.

    Args:
        keys_string: Comma-separated ``key`` or ``key:principal`` entries, or None.

    Returns:
        Mapping of trimmed, non-empty keys to principal ids.

    Examples:
        >>> parse_api_keys("k1:alice, k2:bob")
        {'k1': 'alice', 'k2': 'bob'}
        >>> parse_api_keys(None)
        {}
    """
    if not keys_string:
        return {}

    keys: dict[str, str] = {}
    for entry in keys_string.split(","):
        key, _, principal = entry.strip().partition(":")
        key = key.strip()
        if not key:
            continue
        keys[key] = principal.strip() or f"key-{_key_hash(key)}"
    return keys


def validate_api_key(provided_key: str) -> str:
    """Validate an API key and return the principal it belongs to.

    Args:
        provided_key: API key to validate.

    Returns:
        Principal id bound to the key (``anonymous`` when auth is disabled).

    Raises:
        AuthenticationAppError: If the key is unknown or no keys are configured.
    """
    if not settings.app.api_key_required:
        return ANONYMOUS_PRINCIPAL

    valid_keys = parse_api_keys(settings.app.api_keys)

    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    principal = valid_keys.get(provided_key)
    if principal is None:
        logger.warning(
            "api_key_validation_failed",
            extra={"reason": "invalid_api_key", "api_key_hash": _key_hash(provided_key)},
        )
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")

    return principal


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """FastAPI dependency authenticating the caller.

    Usage:
        @router.post("/records", dependencies=[Depends(verify_api_key)])

    Returns:
        The authenticated principal id, also bound to the ambient session.
        With auth disabled no principal is bound, so rate limiting falls back
        to the client address.

    Raises:
        AuthenticationAppError: Missing or invalid key (rendered as 401).
    """
    if not settings.app.api_key_required:
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return ANONYMOUS_PRINCIPAL

    if not x_api_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise AuthenticationAppError(
            code="unauthorized",
            message="Unauthorized",
            details={"hint": "Provide the X-API-Key header"},
        )

    principal = validate_api_key(x_api_key)
    set_current_principal(principal)
    logger.info(
        "auth.success",
        extra={"api_key_hash": _key_hash(x_api_key)},
    )
    return principal
