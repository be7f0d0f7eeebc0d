"""Typed cursor schemas for incremental ingestion.

Each cursor schema is a Pydantic model that defines the structure
of the resumption state for a specific source.
"""

from ._base import BaseCursor
from .github_issues import IssueCursor

__all__ = [
    "BaseCursor",
    "IssueCursor",
]
