"""Process-wide settings loaded from the environment."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings.

    Values come from environment variables (or a local ``.env`` file).
    Per-repository options live in ``IngestConfig``; this class only holds
    what every worker in the process shares.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    LOG_LEVEL: str = Field("INFO", description="Level for the issuestream root logger")

    GITHUB_API_URL: str = Field("https://api.github.com", description="GitHub REST API base URL")
    GITHUB_TOKEN: Optional[str] = Field(
        None, description="Personal access token; anonymous requests when unset"
    )
    GITHUB_API_VERSION: str = Field("2022-11-28", description="X-GitHub-Api-Version header")

    HTTP_TIMEOUT_SECONDS: float = Field(30.0, gt=0, description="Per-request timeout")
    OFFSETS_DIR: str = Field("local_storage/offsets", description="Filesystem offset store root")
