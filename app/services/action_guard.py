"""Rate limiting for arbitrary async actions.

``with_rate_limit`` wraps an async callable so every invocation first resolves
an identifier, then passes a limiter check, and only then runs the action.
The action itself stays unaware of rate limiting.

Example:
    >>> create_note = with_rate_limit(_create_note, config=RateLimitPresets.MODERATE)
    >>> public_lookup = with_rate_limit(
    ...     _lookup,
    ...     config=RateLimitConfig(max_requests=5, window_ms=60_000),
    ...     get_identifier=lambda: f"ip:{client_ip()}",
    ... )
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Awaitable, Callable, ParamSpec, TypeVar

from app.adapters.rate_limit import AbstractRateLimitStore, RateLimitConfig
from app.core.errors import AuthenticationAppError
from app.core.session import get_current_principal
from app.services.rate_limiter import create_rate_limiter

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

IdentifierResolver = Callable[[], "Awaitable[str] | str"]


async def get_default_identifier() -> str:
    """Resolve the authenticated principal id from the ambient session.

    Raises:
        AuthenticationAppError: If no principal is bound to the current context.
    """

    principal_id = get_current_principal()
    if not principal_id:
        logger.warning("rate_limit.identifier_missing", extra={"reason": "no_principal"})
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")
    return principal_id


async def _resolve_identifier(get_identifier: IdentifierResolver | None) -> str:
    if get_identifier is None:
        return await get_default_identifier()

    identifier = get_identifier()
    if inspect.isawaitable(identifier):
        identifier = await identifier
    return identifier


def with_rate_limit(
    action: Callable[P, Awaitable[T]],
    *,
    config: RateLimitConfig,
    get_identifier: IdentifierResolver | None = None,
    store: AbstractRateLimitStore | None = None,
    clock: Callable[[], float] | None = None,
) -> Callable[P, Awaitable[T]]:
    """Wrap ``action`` with a rate limit check.

    The limiter is created once here, so all calls of the wrapped action share
    the same policy. Without an explicit ``store`` the process-wide store is
    resolved per call.

    Args:
        action: Async callable to guard.
        config: Policy for the guard.
        get_identifier: Optional resolver (sync or async) for the rate limit
            key. Defaults to the authenticated principal id.
        store: Optional store; defaults to the process-wide store.
        clock: Optional time source (epoch ms) for the retry countdown;
            defaults to the store's clock.

    Returns:
        Async callable with the same signature as ``action``.

    Raises (from the returned callable):
        AuthenticationAppError: Default resolver found no principal.
        RateLimitExceededError: The identifier is over its limit; ``action``
            is not invoked.
    """

    limiter = create_rate_limiter(config, store=store, clock=clock)

    @functools.wraps(action)
    async def guarded(*args: P.args, **kwargs: P.kwargs) -> T:
        identifier = await _resolve_identifier(get_identifier)
        await limiter.check(identifier)
        return await action(*args, **kwargs)

    return guarded


def create_rate_limit_middleware(
    config: RateLimitConfig,
    *,
    store: AbstractRateLimitStore | None = None,
    clock: Callable[[], float] | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Return a decorator applying ``config`` with the default identifier.

    Useful for composing with other decorators::

        moderate = create_rate_limit_middleware(RateLimitPresets.MODERATE)

        @moderate
        async def update_record(record_id: str) -> Record: ...
    """

    def decorator(action: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        return with_rate_limit(action, config=config, store=store, clock=clock)

    return decorator
