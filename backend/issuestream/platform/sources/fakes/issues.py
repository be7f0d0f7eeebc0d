"""Fake issues page fetcher for testing."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from issuestream.core.datetime_utils import ensure_utc
from issuestream.platform.entities import GitHubIssueEntity
from issuestream.platform.sync.types import IssuePage

IssueLike = Union[GitHubIssueEntity, Dict[str, Any]]


class FakeIssuePageFetcher:
    """In-memory fake for the PageFetcher protocol.

    Serves a fixed set of issues the way the listing endpoint does: issues
    updated at or after ``since``, ascending by ``updated_at``, split into
    pages of ``per_page``. Errors queued with ``fail_next`` are raised by the
    following calls, one per call, before any issue is served.
    """

    def __init__(self, issues: Iterable[IssueLike] = (), per_page: int = 100) -> None:
        """Initialize with the issues the fake repository holds."""
        self.per_page = per_page
        self.issues: List[GitHubIssueEntity] = []
        self.calls: List[Tuple[int, datetime]] = []
        self._errors: List[Exception] = []
        self._pages: Dict[Tuple[int, datetime], List[IssueLike]] = {}
        for issue in issues:
            self.add(issue)

    def add(self, issue: IssueLike) -> GitHubIssueEntity:
        """Add or replace (by number) an issue."""
        entity = issue if isinstance(issue, GitHubIssueEntity) else GitHubIssueEntity.from_api(issue)
        self.issues = [existing for existing in self.issues if existing.number != entity.number]
        self.issues.append(entity)
        return entity

    def fail_next(self, *errors: Exception) -> None:
        """Queue errors for the next calls."""
        self._errors.extend(errors)

    def serve_page(self, page: int, since: datetime, issues: List[IssueLike]) -> None:
        """Pin the exact response of one (page, since) request."""
        self._pages[(page, ensure_utc(since))] = list(issues)

    async def fetch(self, page: int, since: datetime) -> IssuePage:
        """Serve one page."""
        since = ensure_utc(since)
        self.calls.append((page, since))
        if self._errors:
            raise self._errors.pop(0)

        pinned = self._pages.get((page, since))
        if pinned is not None:
            served = [
                item if isinstance(item, GitHubIssueEntity) else GitHubIssueEntity.from_api(item)
                for item in pinned
            ]
            return IssuePage(page=page, since=since, issues=tuple(served))

        window = sorted(
            (issue for issue in self.issues if issue.updated_at >= since),
            key=lambda issue: issue.updated_at,
        )
        start = (page - 1) * self.per_page
        return IssuePage(
            page=page, since=since, issues=tuple(window[start : start + self.per_page])
        )

    @property
    def last_call(self) -> Optional[Tuple[int, datetime]]:
        """Most recent (page, since) request."""
        return self.calls[-1] if self.calls else None
