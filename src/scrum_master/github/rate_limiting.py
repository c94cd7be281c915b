"""Tracking of GitHub rate limit headers."""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from .exceptions import GitHubRateLimitError


@dataclass
class RateLimitInfo:
    """Rate limit snapshot for one GitHub resource bucket."""

    limit: int
    remaining: int
    reset: int
    used: int = 0
    resource: str = "core"

    @property
    def seconds_until_reset(self) -> float:
        """Get seconds until rate limit resets."""
        return max(0.0, self.reset - time.time())


@dataclass
class RateLimitTracker:
    """Remembers the last rate limit headers seen per resource.

    The tracker never sleeps; when a bucket is exhausted it refuses the next
    request so the caller sees a ``rate limit exceeded`` failure.
    """

    buffer: int = 0
    _rate_limits: dict[str, RateLimitInfo] = field(default_factory=dict)

    def get_rate_limit(self, resource: str = "core") -> RateLimitInfo | None:
        """Get current rate limit info for resource."""
        return self._rate_limits.get(resource)

    def update(self, headers: Mapping[str, str]) -> None:
        """Update rate limit info from response headers.

        Args:
            headers: HTTP response headers from GitHub API
        """
        if "X-RateLimit-Limit" not in headers:
            return

        try:
            info = RateLimitInfo(
                limit=int(headers.get("X-RateLimit-Limit", 5000)),
                remaining=int(headers.get("X-RateLimit-Remaining", 0)),
                reset=int(headers.get("X-RateLimit-Reset", 0)),
                used=int(headers.get("X-RateLimit-Used", 0)),
                resource=headers.get("X-RateLimit-Resource", "core"),
            )
        except (ValueError, TypeError):
            return
        self._rate_limits[info.resource] = info

    def check(self, resource: str = "core") -> None:
        """Refuse a request when the bucket is at or under the buffer.

        Raises:
            GitHubRateLimitError: If the bucket has not reset yet
        """
        info = self.get_rate_limit(resource)
        if info is None:
            return

        if info.remaining <= self.buffer and info.seconds_until_reset > 0:
            raise GitHubRateLimitError(
                f"API rate limit exceeded for {resource}: "
                f"{info.remaining} calls left, resets in "
                f"{info.seconds_until_reset:.0f}s",
                reset_time=info.reset,
                remaining=info.remaining,
                limit=info.limit,
            )
