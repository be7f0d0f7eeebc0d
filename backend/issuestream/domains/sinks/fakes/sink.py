"""Fake event sink for testing."""

from typing import List, Optional

from issuestream.platform.events import OutboundEvent


class FakeEventSink:
    """In-memory fake for the EventSink protocol that records published events."""

    def __init__(self, fail_on: Optional[int] = None) -> None:
        """Initialize with no events; ``fail_on`` makes that publish (0-based) raise."""
        self.events: List[OutboundEvent] = []
        self.fail_on = fail_on
        self.closed = False

    async def publish(self, event: OutboundEvent) -> None:
        """Record the event."""
        if self.fail_on is not None and len(self.events) == self.fail_on:
            raise RuntimeError("Simulated sink failure")
        self.events.append(event)

    async def close(self) -> None:
        """Mark closed."""
        self.closed = True

    @property
    def issue_numbers(self) -> List[int]:
        """Issue numbers in publish order."""
        return [event.key.number for event in self.events]
