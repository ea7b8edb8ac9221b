"""Unit tests for the in-memory fixed-window store."""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit import InMemoryRateLimitStore, RateLimitConfig


def test_first_request_is_allowed(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=5, window_ms=1000)

    result = store.check_and_increment("new-user", config)

    assert result.is_allowed is True
    assert result.limit == 5
    assert result.remaining == 4
    assert result.reset_at == 1000


def test_window_sequence_allows_then_denies_then_reopens(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=3, window_ms=1000)

    decisions = []
    for t in (0, 100, 200, 300):
        clock.return_value = t
        result = store.check_and_increment("u1", config)
        decisions.append((result.is_allowed, result.remaining))

    assert decisions == [(True, 2), (True, 1), (True, 0), (False, 0)]

    clock.return_value = 1001
    reopened = store.check_and_increment("u1", config)
    assert reopened.is_allowed is True
    assert reopened.remaining == 2
    assert reopened.reset_at == 2001


def test_window_expires_exactly_at_reset(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=1, window_ms=1000)

    assert store.check_and_increment("u1", config).is_allowed is True
    clock.return_value = 999
    assert store.check_and_increment("u1", config).is_allowed is False
    clock.return_value = 1000
    assert store.check_and_increment("u1", config).is_allowed is True


def test_denial_does_not_mutate_state(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=2, window_ms=1000)

    store.check_and_increment("u1", config)
    clock.return_value = 400
    store.check_and_increment("u1", config)

    for t in (500, 600, 700):
        clock.return_value = t
        denied = store.check_and_increment("u1", config)
        assert denied.is_allowed is False
        assert denied.remaining == 0
        assert denied.reset_at == 1000

    # Denials neither extended the window nor consumed budget of the next one.
    clock.return_value = 1000
    result = store.check_and_increment("u1", config)
    assert result.is_allowed is True
    assert result.remaining == 1


def test_reset_at_is_fixed_at_window_open(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=10, window_ms=1000)

    store.check_and_increment("u1", config)
    clock.return_value = 900
    assert store.check_and_increment("u1", config).reset_at == 1000


def test_identifiers_are_isolated(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=1, window_ms=60_000)

    assert store.check_and_increment("k1", config).is_allowed is True
    assert store.check_and_increment("k1", config).is_allowed is False

    other = store.check_and_increment("k2", config)
    assert other.is_allowed is True
    assert other.remaining == 0


def test_clear_forgets_all_identifiers(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=1, window_ms=60_000)

    store.check_and_increment("k1", config)
    store.check_and_increment("k2", config)
    assert len(store) == 2

    store.clear()

    assert len(store) == 0
    result = store.check_and_increment("k1", config)
    assert result.is_allowed is True
    assert result.remaining == 0


def test_expired_entry_is_evicted_lazily(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)
    config = RateLimitConfig(max_requests=1, window_ms=100)

    store.check_and_increment("k1", config)
    clock.return_value = 500
    assert len(store) == 1

    store.check_and_increment("k1", config)
    assert len(store) == 1


def test_sweep_expired_removes_only_closed_windows(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock)

    store.check_and_increment("short", RateLimitConfig(max_requests=1, window_ms=100))
    store.check_and_increment("long", RateLimitConfig(max_requests=1, window_ms=10_000))

    clock.return_value = 200
    assert store.sweep_expired() == 1
    assert len(store) == 1
    assert store.check_and_increment("long", RateLimitConfig(max_requests=1, window_ms=10_000)).is_allowed is False


def test_max_entries_evicts_entry_closest_to_reset(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock, max_entries=2)
    config = RateLimitConfig(max_requests=1, window_ms=1000)

    store.check_and_increment("a", config)
    clock.return_value = 10
    store.check_and_increment("b", config)
    clock.return_value = 20
    store.check_and_increment("c", config)

    assert len(store) == 2
    # "a" was evicted, so it starts a fresh window; "b" is still tracked.
    assert store.check_and_increment("b", config).is_allowed is False
    assert store.check_and_increment("a", config).is_allowed is True


def test_max_entries_prefers_sweeping_expired(clock: Mock) -> None:
    store = InMemoryRateLimitStore(clock=clock, max_entries=2)

    store.check_and_increment("old", RateLimitConfig(max_requests=1, window_ms=5))
    store.check_and_increment("live", RateLimitConfig(max_requests=1, window_ms=1000))

    clock.return_value = 10
    store.check_and_increment("new", RateLimitConfig(max_requests=1, window_ms=1000))

    assert len(store) == 2
    assert store.check_and_increment("live", RateLimitConfig(max_requests=1, window_ms=1000)).is_allowed is False


def test_concurrent_checks_never_exceed_limit() -> None:
    store = InMemoryRateLimitStore()
    config = RateLimitConfig(max_requests=50, window_ms=60_000)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: store.check_and_increment("shared", config), range(500)))

    assert sum(r.is_allowed for r in results) == 50


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_requests": 0, "window_ms": 1000},
        {"max_requests": 1, "window_ms": 0},
    ],
)
def test_invalid_config(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitConfig(**kwargs)


def test_invalid_arguments() -> None:
    with pytest.raises(ValueError):
        InMemoryRateLimitStore(max_entries=0)

    store = InMemoryRateLimitStore()
    with pytest.raises(ValueError):
        store.check_and_increment("", RateLimitConfig(max_requests=1, window_ms=1000))
