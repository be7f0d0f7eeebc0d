"""Upstream sources: page fetchers and their retry helpers."""

from .github_issues import GitHubIssuesFetcher

__all__ = ["GitHubIssuesFetcher"]
