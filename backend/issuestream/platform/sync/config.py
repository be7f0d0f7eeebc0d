"""Ingestion worker configuration.

All defaults are defined here in the schema. Uses Pydantic Settings for
automatic env var loading:

    INGEST__OWNER=octocat
    INGEST__REPOSITORY=hello-world
    INGEST__LOOKBACK_DAYS=3
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from issuestream.core.exceptions import ConfigurationError, unpack_validation_error
from issuestream.core.shared_models import RateLimitLevel
from issuestream.platform.sources.github_issues import MAX_PER_PAGE


class IngestConfig(BaseSettings):
    """Options of one ingestion worker (one repository)."""

    model_config = SettingsConfigDict(
        env_prefix="INGEST__",
        extra="ignore",
    )

    owner: str = Field(..., description="Repository owner (user or organization)")
    repository: str = Field(..., description="Repository name")
    topic: str = Field("github-issues", description="Output channel the events go to")

    lookback_days: float = Field(7, ge=0, description="Start this far back when no offset exists")
    since: Optional[datetime] = Field(
        None, description="Explicit start instant; overrides lookback_days"
    )
    batch_size: int = Field(MAX_PER_PAGE, ge=1, le=MAX_PER_PAGE, description="Issues per page")

    cooldown_seconds: float = Field(10.0, ge=0, description="Pause after each exhausted window")
    min_request_interval_seconds: float = Field(
        0.0, ge=0, description="Minimum gap between requests without budget signal"
    )
    low_budget_threshold: int = Field(
        10, ge=0, description="Spread requests out below this many remaining calls"
    )
    rate_limit_level: RateLimitLevel = Field(
        RateLimitLevel.ACCOUNT, description="Share the rate budget across workers of one token"
    )
    timestamp_resolution_seconds: float = Field(
        1.0, gt=0, description="Timestamp granularity of the upstream API"
    )

    @field_validator("owner", "repository")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        if "/" in value:
            raise ValueError("must be a single path segment")
        return value

    @property
    def resolution(self) -> timedelta:
        """Watermark bump applied when a window is exhausted."""
        return timedelta(seconds=self.timestamp_resolution_seconds)

    @property
    def full_name(self) -> str:
        """``owner/repository``."""
        return f"{self.owner}/{self.repository}"

    @classmethod
    def load(cls, **overrides) -> "IngestConfig":
        """Build the config from the environment plus ``overrides``.

        None values in ``overrides`` are ignored.

        Raises:
            ConfigurationError: If a required option is missing or invalid
        """
        values = {key: value for key, value in overrides.items() if value is not None}
        try:
            return cls(**values)
        except ValidationError as e:
            errors = unpack_validation_error(e)["errors"]
            raise ConfigurationError(f"Invalid ingestion config: {errors}", errors=errors) from e
