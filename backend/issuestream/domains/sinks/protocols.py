"""Protocols for the sinks domain."""

from typing import Protocol, runtime_checkable

from issuestream.platform.events import OutboundEvent


@runtime_checkable
class EventSink(Protocol):
    """Downstream destination of outbound events."""

    async def publish(self, event: OutboundEvent) -> None:
        """Deliver one event; returns once the sink has accepted it."""
        ...

    async def close(self) -> None:
        """Flush and release resources."""
        ...
