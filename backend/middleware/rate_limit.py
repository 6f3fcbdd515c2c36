"""
In-memory rate limiting for generation calls.

One sliding window per user. Every generate / refine / interact request
counts, including ones the entitlement gate later denies.
"""

from __future__ import annotations

from collections import defaultdict, deque
from datetime import UTC, datetime, timedelta


class RateLimiter:
    """Sliding-window request counter keyed by user id."""

    def __init__(self):
        # key -> request timestamps, oldest first
        self._requests: dict[str, deque[datetime]] = defaultdict(deque)

    def _prune(self, key: str, cutoff: datetime) -> deque[datetime]:
        hits = self._requests[key]
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def check_rate_limit(self, key: str, max_requests: int, window_minutes: int = 1) -> bool:
        """
        Record a request for key if it is under the limit.

        Args:
            key: Identifier to rate limit (user id)
            max_requests: Maximum requests allowed in the window
            window_minutes: Time window in minutes (default 1)

        Returns:
            True if under the limit, False if limit exceeded
        """
        now = datetime.now(UTC)
        hits = self._prune(key, now - timedelta(minutes=window_minutes))
        if len(hits) >= max_requests:
            return False
        hits.append(now)
        return True

    def retry_after(self, key: str, window_minutes: int = 1) -> int:
        """Seconds until the oldest request in the window expires."""
        now = datetime.now(UTC)
        window = timedelta(minutes=window_minutes)
        hits = self._prune(key, now - window)
        if not hits:
            return 0
        return max(1, int((hits[0] + window - now).total_seconds()) + 1)

    def cleanup_old_entries(self, max_age_hours: int = 2):
        """Drop keys with no requests in the last max_age_hours."""
        cutoff = datetime.now(UTC) - timedelta(hours=max_age_hours)
        for key in list(self._requests.keys()):
            if not self._prune(key, cutoff):
                del self._requests[key]


# Global rate limiter instance
rate_limiter = RateLimiter()
