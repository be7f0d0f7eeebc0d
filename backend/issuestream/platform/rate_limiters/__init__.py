"""Upstream API rate limiters."""

from .github import GitHubRateLimiter, get_shared_rate_limiter, stop_shared_rate_limiters

__all__ = [
    "GitHubRateLimiter",
    "get_shared_rate_limiter",
    "stop_shared_rate_limiters",
]
