"""Cursor store for tracking ingestion progress."""

from datetime import timedelta
from typing import Dict, Mapping, Optional

from pydantic import ValidationError

from issuestream.core.datetime_utils import ensure_utc, utc_now
from issuestream.core.exceptions import ConfigurationError, InvalidStateError
from issuestream.platform.cursors import IssueCursor
from issuestream.platform.sync.config import IngestConfig


class CursorStore:
    """Holds the in-flight resumption state of one partition.

    The store only keeps the state in memory; the host persists the offsets
    it is handed. ``advance()`` is the single mutation point and refuses to
    move the watermark backwards.
    """

    def __init__(self, partition: Dict[str, str], config: IngestConfig):
        """Initialize the store.

        Args:
            partition: Source partition the state belongs to
            config: Provides the lookback horizon or explicit start instant
        """
        self.partition = dict(partition)
        self.config = config
        self._state: Optional[IssueCursor] = None
        self._loaded_from_offset = False

    @property
    def partition_key(self) -> str:
        """Stable string form of the partition (``owner/repository``)."""
        return "/".join(self.partition[key] for key in sorted(self.partition))

    def default_state(self) -> IssueCursor:
        """State used when nothing was persisted yet."""
        if self.config.since is not None:
            watermark = ensure_utc(self.config.since)
        else:
            watermark = utc_now() - timedelta(days=self.config.lookback_days)
        return IssueCursor(watermark=watermark, next_page=1)

    def load(self, saved_offset: Optional[Mapping[str, object]] = None) -> IssueCursor:
        """Load the state from a persisted offset, or defaults when absent.

        Raises:
            ConfigurationError: If the saved offset cannot be parsed
        """
        if saved_offset:
            try:
                self._state = IssueCursor.from_offset(saved_offset)
            except (ValueError, ValidationError) as e:
                raise ConfigurationError(
                    f"Saved offset for {self.partition_key} is invalid: {e}"
                ) from e
            self._loaded_from_offset = True
        else:
            self._state = self.default_state()
            self._loaded_from_offset = False
        return self._state

    @property
    def current(self) -> IssueCursor:
        """The state the next cycle starts from.

        Raises:
            InvalidStateError: If ``load()`` was not called
        """
        if self._state is None:
            raise InvalidStateError(f"Cursor for {self.partition_key} was not loaded")
        return self._state

    @property
    def loaded_from_offset(self) -> bool:
        """Whether the state was restored from a persisted offset."""
        return self._loaded_from_offset

    def advance(self, new_state: IssueCursor) -> IssueCursor:
        """Replace the state with the result of a successful cycle.

        Raises:
            InvalidStateError: If ``new_state`` would move the watermark backwards
        """
        current = self.current
        if new_state.watermark < current.watermark:
            raise InvalidStateError(
                f"Watermark for {self.partition_key} cannot move backwards "
                f"({current.watermark.isoformat()} -> {new_state.watermark.isoformat()})"
            )
        self._state = new_state
        return new_state

    def offset(self) -> Dict[str, str]:
        """Current state serialized for the host's offset store."""
        return self.current.to_offset()
