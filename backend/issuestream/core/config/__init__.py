"""Configuration module for issuestream.

Usage:
    from issuestream.core.config import settings

    if settings.GITHUB_TOKEN:
        ...
"""

from issuestream.core.config.settings import Settings

__all__ = [
    "Settings",
    "settings",
]

# Singleton settings instance
settings = Settings()
