"""Fake offset store for testing."""

from typing import Dict, List, Optional, Tuple

from issuestream.core.exceptions import OffsetCommitError


def _key(partition: Dict[str, str]) -> Tuple[Tuple[str, str], ...]:
    return tuple(sorted(partition.items()))


class FakeOffsetStore:
    """In-memory fake for the OffsetStore protocol.

    Records every commit in order. Once ``fail_after`` commits have succeeded,
    every further commit raises.
    """

    def __init__(self, fail_after: Optional[int] = None) -> None:
        """Initialize with empty store."""
        self._store: Dict[Tuple[Tuple[str, str], ...], Dict[str, str]] = {}
        self.commits: List[Tuple[Dict[str, str], Dict[str, str]]] = []
        self.fail_after = fail_after

    def seed(self, partition: Dict[str, str], offset: Dict[str, str]) -> None:
        """Seed a committed offset for a partition."""
        self._store[_key(partition)] = dict(offset)

    async def load(self, partition: Dict[str, str]) -> Optional[Dict[str, str]]:
        """Return seeded or committed offset, or None."""
        offset = self._store.get(_key(partition))
        return dict(offset) if offset is not None else None

    async def commit(self, partition: Dict[str, str], offset: Dict[str, str]) -> None:
        """Record the commit."""
        if self.fail_after is not None and len(self.commits) >= self.fail_after:
            raise OffsetCommitError("/".join(partition.values()), "Simulated commit failure")
        self._store[_key(partition)] = dict(offset)
        self.commits.append((dict(partition), dict(offset)))
