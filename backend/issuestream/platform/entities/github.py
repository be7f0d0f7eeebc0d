"""GitHub issue entity schemas.

Decoded from the ``GET /repos/{owner}/{repo}/issues`` payload. Unknown fields
in the payload are ignored; missing or mistyped required fields fail
validation, which the page fetcher turns into an ``EntityDecodeError``.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from issuestream.core.datetime_utils import ensure_utc
from issuestream.core.shared_models import IssueState


class GitHubUser(BaseModel):
    """Author of an issue."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(..., description="API URL of the user")
    id: int = Field(..., description="Numeric GitHub user ID")
    login: str = Field(..., description="GitHub login")


class GitHubPullRequestRef(BaseModel):
    """Pull request marker present on issues that are pull requests."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(..., description="API URL of the pull request")
    html_url: str = Field(..., description="Browser URL of the pull request")


class GitHubIssueEntity(BaseModel):
    """A GitHub issue (or pull request) as returned by the issues endpoint.

    ``number`` is stable for the lifetime of the issue and is the upsert key
    downstream. ``updated_at`` drives the ingestion watermark.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    number: int = Field(..., description="Issue number, unique within the repository")
    url: str = Field(..., description="API URL of the issue")
    title: str = Field(..., description="Issue title")
    state: IssueState = Field(..., description="open or closed")
    created_at: datetime = Field(..., description="When the issue was opened")
    updated_at: datetime = Field(..., description="When the issue was last modified")
    user: GitHubUser = Field(..., description="Issue author")
    pull_request: Optional[GitHubPullRequestRef] = Field(
        None, description="Set when the issue is a pull request"
    )

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "GitHubIssueEntity":
        """Build an entity from one element of the API response.

        Raises:
            pydantic.ValidationError: If the payload does not match the schema
        """
        return cls.model_validate(payload)

    @property
    def sort_key(self) -> tuple:
        """Position of the issue in the upstream ``sort=updated`` order."""
        return (self.updated_at, self.number)
