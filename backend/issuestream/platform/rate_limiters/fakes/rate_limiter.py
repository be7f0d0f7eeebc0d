"""Fake rate limiter for testing."""

from typing import Optional

from issuestream.core.exceptions import IngestionCancelledError


class FakeRateLimiter:
    """In-memory fake for the RateLimiter protocol that never waits.

    Counts calls so tests can assert how often the loop asked for budget and
    how many batch boundaries it crossed. With ``stop_after`` set, the limiter
    stops itself once that many requests were granted, which ends a worker's
    ``run`` loop the way a shutdown would.
    """

    def __init__(self, stop_after: Optional[int] = None) -> None:
        """Initialize with zeroed counters."""
        self.acquired = 0
        self.boundaries = 0
        self.stop_after = stop_after
        self.stopped = False

    def stop(self) -> None:
        """Make further acquires raise."""
        self.stopped = True

    async def acquire(self) -> float:
        """Count the call."""
        if self.stop_after is not None and self.acquired >= self.stop_after:
            self.stopped = True
        if self.stopped:
            raise IngestionCancelledError("Rate limiter stopped")
        self.acquired += 1
        return 0.0

    async def mark_batch_boundary(self) -> None:
        """Count the boundary."""
        self.boundaries += 1
