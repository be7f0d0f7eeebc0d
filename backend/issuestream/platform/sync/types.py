"""Value objects for the ingestion core."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from issuestream.core.shared_models import CyclePhase, PageOutcome
from issuestream.platform.cursors import IssueCursor
from issuestream.platform.entities import GitHubIssueEntity
from issuestream.platform.events import OutboundEvent


@dataclass(frozen=True)
class IssuePage:
    """One decoded page of the issues listing, in the order the API returned it."""

    page: int
    since: datetime
    issues: Tuple[GitHubIssueEntity, ...]

    @property
    def size(self) -> int:
        """Number of issues the API returned on this page."""
        return len(self.issues)


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one poll cycle.

    ``state`` is the resumption state to continue from; the input state of
    the cycle is never modified.
    """

    events: List[OutboundEvent]
    state: IssueCursor
    previous_state: IssueCursor
    outcome: PageOutcome
    fetched: int
    skipped: int = 0
    max_seen_updated_at: Optional[datetime] = None
    phases: Tuple[CyclePhase, ...] = field(default_factory=tuple)

    @property
    def watermark_advanced(self) -> bool:
        """Whether the cycle moved the watermark forward."""
        return self.state.watermark > self.previous_state.watermark
