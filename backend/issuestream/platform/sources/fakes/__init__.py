"""Fakes for the sources module."""

from .issues import FakeIssuePageFetcher

__all__ = ["FakeIssuePageFetcher"]
