"""Translates decoded issues into outbound change events."""

from datetime import datetime
from typing import Dict

from issuestream.core.datetime_utils import to_epoch_millis
from issuestream.platform.cursors import IssueCursor
from issuestream.platform.entities import GitHubIssueEntity
from issuestream.platform.events import (
    IssueKey,
    IssueUserValue,
    IssueValue,
    OutboundEvent,
    PullRequestValue,
)

OWNER_FIELD = "owner"
REPOSITORY_FIELD = "repository"


class EventEmitter:
    """Builds keyed, timestamped events for one repository.

    Deterministic: the same issue and cursor position always produce the same
    key, value and offset, so re-delivery after a restart is an idempotent
    upsert downstream.
    """

    def __init__(self, owner: str, repository: str, topic: str):
        """Initialize the emitter for one (owner, repository) partition."""
        self.owner = owner
        self.repository = repository
        self.topic = topic

    @property
    def partition(self) -> Dict[str, str]:
        """Source partition shared by every event of this repository."""
        return {OWNER_FIELD: self.owner, REPOSITORY_FIELD: self.repository}

    def emit(
        self,
        entity: GitHubIssueEntity,
        watermark_candidate: datetime,
        page_cursor: int,
        resume_within_page: bool = False,
    ) -> OutboundEvent:
        """Build the event for ``entity``.

        Args:
            entity: Decoded issue
            watermark_candidate: Watermark to resume from after this issue
            page_cursor: Page to resume from after this issue
            resume_within_page: Whether resuming refetches ``page_cursor`` and
                skips through ``entity``

        Returns:
            The event; its offset resumes strictly after ``entity``
        """
        resume_at = IssueCursor(
            watermark=watermark_candidate,
            next_page=page_cursor,
            last_updated_at=entity.updated_at,
            last_issue_number=entity.number,
            resume_within_page=resume_within_page,
        )
        return OutboundEvent(
            topic=self.topic,
            partition=self.partition,
            offset=resume_at.to_offset(),
            key=self.build_key(entity),
            value=self.build_value(entity),
            timestamp_ms=to_epoch_millis(entity.updated_at),
        )

    def build_key(self, entity: GitHubIssueEntity) -> IssueKey:
        """Upsert key: stable for the lifetime of the issue."""
        return IssueKey(owner=self.owner, repository=self.repository, number=entity.number)

    def build_value(self, entity: GitHubIssueEntity) -> IssueValue:
        """Issue snapshot. The author is mandatory, the pull request link optional."""
        pull_request = None
        if entity.pull_request is not None:
            pull_request = PullRequestValue(
                url=entity.pull_request.url,
                html_url=entity.pull_request.html_url,
            )

        return IssueValue(
            url=entity.url,
            title=entity.title,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            number=entity.number,
            state=entity.state.value,
            user=IssueUserValue(
                url=entity.user.url,
                id=entity.user.id,
                login=entity.user.login,
            ),
            pull_request=pull_request,
        )
