"""Protocols for the offsets domain."""

from typing import Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class OffsetStore(Protocol):
    """Durable storage for per-partition resumption offsets.

    Owned by the host: the ingestion core computes offsets, the store
    persists them. ``commit`` must not return before the offset is durable.
    """

    async def load(self, partition: Dict[str, str]) -> Optional[Dict[str, str]]:
        """Return the last committed offset of ``partition``, or None."""
        ...

    async def commit(self, partition: Dict[str, str], offset: Dict[str, str]) -> None:
        """Persist ``offset`` as the latest offset of ``partition``.

        Raises:
            OffsetCommitError: If the offset could not be persisted
        """
        ...
