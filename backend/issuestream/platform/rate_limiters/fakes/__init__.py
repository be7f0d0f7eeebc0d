"""Fakes for the rate limiters module."""

from .rate_limiter import FakeRateLimiter

__all__ = ["FakeRateLimiter"]
