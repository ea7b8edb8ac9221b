"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``app.core.config`` so
the settings instance is built from them and no .env file is loaded.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123:user-123,test-api-key-456:user-456")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest

from app.core.session import clear_current_principal
from app.services.rate_limiter import clear_rate_limit_store


@pytest.fixture(autouse=True)
def _reset_rate_limit_state():
    """Start every test with an empty default store and no principal."""
    clear_rate_limit_store()
    clear_current_principal()
    yield
    clear_rate_limit_store()
    clear_current_principal()


@pytest.fixture
def clock() -> Mock:
    """Controllable epoch-milliseconds clock starting at 0."""
    return Mock(return_value=0)
