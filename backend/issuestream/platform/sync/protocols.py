"""Protocols for the collaborators of the poll loop."""

from datetime import datetime
from typing import Protocol, runtime_checkable

from issuestream.platform.sync.types import IssuePage


@runtime_checkable
class PageFetcher(Protocol):
    """Fetches one page of issues updated since a watermark."""

    async def fetch(self, page: int, since: datetime) -> IssuePage:
        """Fetch page ``page`` (1-based) of issues updated at or after ``since``.

        Raises:
            TransientFetchError: On timeouts, 5xx responses and rate limits
            FetchRejectedError: On permanent 4xx rejections
            EntityDecodeError: If the payload does not match the issue schema
        """
        ...


@runtime_checkable
class RateLimiter(Protocol):
    """Request budget gate consulted before each fetch."""

    async def acquire(self) -> float:
        """Wait (possibly zero seconds) until a request may be sent."""
        ...

    async def mark_batch_boundary(self) -> None:
        """Wait the fixed cooldown after a window has been exhausted."""
        ...
