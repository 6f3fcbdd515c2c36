"""
Tests for the sliding-window rate limiter.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from backend.middleware.rate_limit import RateLimiter


def test_allows_up_to_limit():
    limiter = RateLimiter()

    assert all(limiter.check_rate_limit("user-a", 3) for _ in range(3))
    assert limiter.check_rate_limit("user-a", 3) is False


def test_keys_are_independent():
    limiter = RateLimiter()
    limiter.check_rate_limit("user-a", 1)

    assert limiter.check_rate_limit("user-a", 1) is False
    assert limiter.check_rate_limit("user-b", 1) is True


def test_rejected_requests_do_not_count():
    limiter = RateLimiter()
    limiter.check_rate_limit("user-a", 1)
    for _ in range(5):
        limiter.check_rate_limit("user-a", 1)

    assert len(limiter._requests["user-a"]) == 1


def test_window_slides():
    """Requests older than the window no longer count."""
    limiter = RateLimiter()
    limiter._requests["user-a"].append(datetime.now(UTC) - timedelta(minutes=2))

    assert limiter.check_rate_limit("user-a", 1, window_minutes=1) is True


def test_retry_after():
    limiter = RateLimiter()
    assert limiter.retry_after("user-a") == 0

    limiter.check_rate_limit("user-a", 1)
    wait = limiter.retry_after("user-a")

    assert 1 <= wait <= 61


def test_cleanup_old_entries():
    limiter = RateLimiter()
    limiter._requests["stale"].append(datetime.now(UTC) - timedelta(hours=3))
    limiter.check_rate_limit("fresh", 5)

    limiter.cleanup_old_entries(max_age_hours=2)

    assert "stale" not in limiter._requests
    assert "fresh" in limiter._requests
