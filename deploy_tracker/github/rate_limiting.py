"""GitHub API rate limit tracking."""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .exceptions import GitHubRateLimitError


@dataclass
class RateLimitInfo:
    """Rate limit information from GitHub API."""

    limit: int
    remaining: int
    reset: int
    used: int = 0
    resource: str = "core"

    @property
    def reset_datetime(self) -> datetime:
        """Get reset time as datetime."""
        return datetime.fromtimestamp(self.reset, tz=UTC)

    @property
    def seconds_until_reset(self) -> float:
        """Get seconds until rate limit resets."""
        return max(0, self.reset - time.time())

    @property
    def is_exceeded(self) -> bool:
        """Check if rate limit is exceeded."""
        return self.remaining <= 0


@dataclass
class RateLimitManager:
    """Tracks GitHub API rate limits reported in response headers.

    The manager never waits or retries. It only refuses to send a request
    when the last response reported an exhausted quota that has not reset.
    """

    _rate_limits: dict[str, RateLimitInfo] = field(default_factory=dict)

    def get_rate_limit(self, resource: str = "core") -> RateLimitInfo | None:
        """Get current rate limit info for resource."""
        return self._rate_limits.get(resource)

    def update_rate_limit(self, headers: Mapping[str, str]) -> None:
        """Update rate limit info from response headers.

        Args:
            headers: HTTP response headers from GitHub API
        """
        if "X-RateLimit-Limit" not in headers:
            return

        try:
            rate_limit = RateLimitInfo(
                limit=int(headers.get("X-RateLimit-Limit", 5000)),
                remaining=int(headers.get("X-RateLimit-Remaining", 0)),
                reset=int(headers.get("X-RateLimit-Reset", 0)),
                used=int(headers.get("X-RateLimit-Used", 0)),
                resource=headers.get("X-RateLimit-Resource", "core"),
            )
            self._rate_limits[rate_limit.resource] = rate_limit
        except (ValueError, TypeError):
            # Ignore invalid rate limit headers
            pass

    def check_rate_limit(self, resource: str = "core") -> None:
        """Check if rate limit allows request.

        Args:
            resource: GitHub API resource type

        Raises:
            GitHubRateLimitError: If the quota is exhausted until a future reset
        """
        rate_limit = self.get_rate_limit(resource)
        if not rate_limit:
            return

        if rate_limit.is_exceeded and rate_limit.seconds_until_reset > 0:
            raise GitHubRateLimitError(
                f"Rate limit exhausted for {resource}. "
                f"Reset in {rate_limit.seconds_until_reset:.0f} seconds",
                reset_time=rate_limit.reset,
                remaining=rate_limit.remaining,
                limit=rate_limit.limit,
            )
