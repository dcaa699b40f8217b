"""Tests for per-client rate limiting."""

import pytest

from api_cache.domain.rate_limits import RateLimitPolicy
from api_cache.errors import InvalidRequest
from api_cache.services.counters import InMemoryCounterStore
from api_cache.services.rate_limiter import UNLIMITED, RateLimiter
from tests.conftest import FakeClock


def test_allows_until_quota_is_used(rate_limiter: RateLimiter) -> None:
    for _ in range(3):
        assert rate_limiter.allow("openai")
        rate_limiter.increment("openai")

    assert not rate_limiter.allow("openai")
    assert rate_limiter.remaining("openai") == 0


def test_available_in_is_zero_until_throttled(
    rate_limiter: RateLimiter, clock: FakeClock
) -> None:
    rate_limiter.increment("openai", 2)
    assert rate_limiter.available_in("openai") == 0

    clock.advance(15)
    rate_limiter.increment("openai")

    assert rate_limiter.available_in("openai") == 45


def test_window_reset_restores_quota(
    rate_limiter: RateLimiter, clock: FakeClock
) -> None:
    rate_limiter.increment("openai", 3)
    assert not rate_limiter.allow("openai")

    clock.advance(60)

    assert rate_limiter.allow("openai")
    assert rate_limiter.remaining("openai") == 3


def test_unlimited_client_is_never_throttled(rate_limiter: RateLimiter) -> None:
    rate_limiter.increment("pixabay", 10_000)

    assert rate_limiter.allow("pixabay")
    assert rate_limiter.remaining("pixabay") == UNLIMITED
    assert rate_limiter.available_in("pixabay") == 0


def test_negative_max_attempts_is_unlimited(clock: FakeClock) -> None:
    limiter = RateLimiter(
        InMemoryCounterStore(clock=clock), {"demo": RateLimitPolicy(-1, 60)}
    )
    limiter.increment("demo", 500)

    assert limiter.allow("demo")


def test_zero_quota_waits_a_full_window(clock: FakeClock) -> None:
    limiter = RateLimiter(
        InMemoryCounterStore(clock=clock), {"demo": RateLimitPolicy(0, 60)}
    )

    assert not limiter.allow("demo")
    assert limiter.available_in("demo") == 60
    assert limiter.status("demo").available_in == 60


def test_clients_do_not_share_windows(rate_limiter: RateLimiter) -> None:
    rate_limiter.increment("openai", 3)

    assert not rate_limiter.allow("openai")
    assert rate_limiter.allow("default")


def test_unknown_client_falls_back_to_default(rate_limiter: RateLimiter) -> None:
    assert rate_limiter.policy("unknown") == rate_limiter.policy("default")


def test_missing_policy_is_rejected(clock: FakeClock) -> None:
    limiter = RateLimiter(InMemoryCounterStore(clock=clock), {})

    with pytest.raises(InvalidRequest):
        limiter.allow("demo")


def test_increment_rejects_non_positive_amount(rate_limiter: RateLimiter) -> None:
    with pytest.raises(InvalidRequest):
        rate_limiter.increment("openai", 0)


def test_clear_resets_window(rate_limiter: RateLimiter) -> None:
    rate_limiter.increment("openai", 3)

    rate_limiter.clear("openai")

    assert rate_limiter.remaining("openai") == 3


def test_status_snapshot(rate_limiter: RateLimiter) -> None:
    rate_limiter.increment("openai", 3)

    status = rate_limiter.status("openai")

    assert status.attempts == 3
    assert status.remaining == 0
    assert status.available_in == 60
    assert not status.allowed


def test_window_boundary_admits_burst(
    rate_limiter: RateLimiter, clock: FakeClock
) -> None:
    rate_limiter.increment("openai")
    clock.advance(59)
    rate_limiter.increment("openai", 2)
    clock.advance(1)

    admitted = 0
    while rate_limiter.allow("openai"):
        rate_limiter.increment("openai")
        admitted += 1

    assert admitted == 3
