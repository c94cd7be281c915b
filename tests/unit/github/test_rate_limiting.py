"""
Unit tests for GitHub rate limit tracking.

Why: The client must refuse requests locally once GitHub reports an
     exhausted bucket, instead of burning requests on guaranteed 403s.

What: Tests RateLimitInfo reset timing and RateLimitTracker header parsing
      and refusal.

How: Feeds header dictionaries directly to the tracker.
"""

import time

import pytest

from scrum_master.github import GitHubRateLimitError, RateLimitInfo, RateLimitTracker


class TestRateLimitInfo:
    """Test RateLimitInfo data class."""

    def test_seconds_until_reset_past(self) -> None:
        info = RateLimitInfo(limit=1, remaining=0, reset=int(time.time()) - 10)

        assert info.seconds_until_reset == 0.0

    def test_seconds_until_reset_future(self) -> None:
        info = RateLimitInfo(limit=1, remaining=0, reset=int(time.time()) + 60)

        assert 0 < info.seconds_until_reset <= 60


class TestRateLimitTracker:
    """Test RateLimitTracker header handling."""

    def test_update_from_headers(self) -> None:
        tracker = RateLimitTracker()
        tracker.update(
            {
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Remaining": "4999",
                "X-RateLimit-Reset": "1700000000",
                "X-RateLimit-Used": "1",
                "X-RateLimit-Resource": "graphql",
            }
        )

        info = tracker.get_rate_limit("graphql")
        assert info is not None
        assert info.remaining == 4999
        assert tracker.get_rate_limit("core") is None

    def test_missing_or_invalid_headers_are_ignored(self) -> None:
        tracker = RateLimitTracker()
        tracker.update({"Content-Type": "application/json"})
        tracker.update({"X-RateLimit-Limit": "lots"})

        assert tracker.get_rate_limit() is None

    def test_check_refuses_when_exhausted(self) -> None:
        """
        Why: Avoid guaranteed failures until the window resets
        What: check() raises with a ``rate limit exceeded`` message
        How: Records a bucket with zero remaining and a future reset
        """
        tracker = RateLimitTracker()
        tracker.update(
            {
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(time.time()) + 300),
            }
        )

        with pytest.raises(GitHubRateLimitError, match="rate limit exceeded") as exc_info:
            tracker.check()
        assert exc_info.value.remaining == 0

    def test_check_allows_after_reset(self) -> None:
        tracker = RateLimitTracker()
        tracker.update(
            {
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(time.time()) - 1),
            }
        )

        tracker.check()

    def test_buffer_reserves_calls(self) -> None:
        tracker = RateLimitTracker(buffer=10)
        tracker.update(
            {
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Remaining": "10",
                "X-RateLimit-Reset": str(int(time.time()) + 300),
            }
        )

        with pytest.raises(GitHubRateLimitError):
            tracker.check()
