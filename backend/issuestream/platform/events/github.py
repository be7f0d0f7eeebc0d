"""Outbound change events for GitHub issues.

Events are validated, frozen Pydantic models. The logical schema mirrors the
key/value split of a keyed log: ``key`` identifies the issue for idempotent
upserts, ``value`` carries the issue snapshot.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class IssueKey(BaseModel):
    """Upsert key of an issue event."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repository: str
    number: int


class IssueUserValue(BaseModel):
    """Issue author as carried in the event value."""

    model_config = ConfigDict(frozen=True)

    url: str
    id: int
    login: str


class PullRequestValue(BaseModel):
    """Linked pull request, present only for pull requests."""

    model_config = ConfigDict(frozen=True)

    url: str
    html_url: str


class IssueValue(BaseModel):
    """Snapshot of an issue at ``updated_at``."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    created_at: datetime
    updated_at: datetime
    number: int
    state: str
    user: IssueUserValue
    pull_request: Optional[PullRequestValue] = None


class OutboundEvent(BaseModel):
    """One emitted change event.

    ``partition`` names the stream the offset belongs to. ``offset`` is the
    resumption state to store once this event is durably recorded; it is
    valid on its own, independent of where the poll cycle ended.
    """

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., description="Output channel")
    partition: Dict[str, str] = Field(..., description="Source partition (owner, repository)")
    offset: Dict[str, str] = Field(..., description="Resumption offset after this event")
    key: IssueKey
    value: IssueValue
    timestamp_ms: int = Field(..., description="Issue updated_at in epoch milliseconds")
