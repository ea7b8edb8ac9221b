"""Ambient session holding the authenticated principal for the current request.

The authentication dependency stores the principal id here; code further down
the call stack (e.g. the default rate limit identifier resolver) reads it
without having the request passed around.
"""

from __future__ import annotations

from contextvars import ContextVar

_principal_var: ContextVar[str | None] = ContextVar("principal_id", default=None)


def set_current_principal(principal_id: str | None) -> None:
    """Bind the authenticated principal id to the current context."""

    _principal_var.set(principal_id)


def get_current_principal() -> str | None:
    """Return the principal id bound to the current context, if any."""

    return _principal_var.get()


def clear_current_principal() -> None:
    """Forget the principal bound to the current context."""

    _principal_var.set(None)
