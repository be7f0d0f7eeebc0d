"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before both testpaths (tests/ and issuestream/domains/),
making its fixtures available to centralized tests AND colocated domain tests.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any issuestream module import
# Uses setdefault so real env vars (CI, e2e) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("GITHUB_API_URL", "https://api.github.test")
os.environ.setdefault("HTTP_TIMEOUT_SECONDS", "5")
os.environ.pop("GITHUB_TOKEN", None)

T0 = datetime(2024, 11, 3, 10, 0, 0, tzinfo=timezone.utc)


def _issue_payload(number: int, updated_at: datetime, /, **overrides) -> dict:
    """Build one element of the issues listing as the API returns it."""
    payload = {
        "url": f"https://api.github.test/repos/octo/hello/issues/{number}",
        "html_url": f"https://github.test/octo/hello/issues/{number}",
        "number": number,
        "title": f"Issue {number}",
        "state": "open",
        "created_at": (updated_at - timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "updated_at": updated_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "user": {
            "url": "https://api.github.test/users/hubot",
            "id": 42,
            "login": "hubot",
        },
        "labels": [],
        "comments": 0,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Shared fake fixtures: individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_offset_store():
    """Fake OffsetStore that records commits."""
    from issuestream.domains.offsets.fakes import FakeOffsetStore

    return FakeOffsetStore()


@pytest.fixture
def fake_event_sink():
    """Fake EventSink that records published events."""
    from issuestream.domains.sinks.fakes import FakeEventSink

    return FakeEventSink()


@pytest.fixture
def fake_rate_limiter():
    """Fake RateLimiter that never waits and counts calls."""
    from issuestream.platform.rate_limiters.fakes import FakeRateLimiter

    return FakeRateLimiter()


@pytest.fixture
def fake_fetcher():
    """Fake PageFetcher over an initially empty repository."""
    from issuestream.platform.sources.fakes import FakeIssuePageFetcher

    return FakeIssuePageFetcher()


# ---------------------------------------------------------------------------
# Issue fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def t0() -> datetime:
    """Reference instant the issue fixtures are placed around."""
    return T0


@pytest.fixture
def issue_payload():
    """Factory for raw issue payloads: ``issue_payload(number, updated_at, **overrides)``."""
    return _issue_payload


@pytest.fixture
def make_issue():
    """Factory for decoded issues: ``make_issue(number, updated_at, **overrides)``."""
    from issuestream.platform.entities import GitHubIssueEntity

    def _make(number: int, updated_at: datetime, **overrides) -> GitHubIssueEntity:
        return GitHubIssueEntity.from_api(_issue_payload(number, updated_at, **overrides))

    return _make
