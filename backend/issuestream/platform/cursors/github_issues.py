"""GitHub issues cursor schema for incremental ingestion."""

from datetime import datetime
from typing import Dict, Mapping, Optional

from pydantic import Field, field_validator

from issuestream.core.datetime_utils import ensure_utc, format_iso, parse_iso

from ._base import BaseCursor

WATERMARK_KEY = "watermark"
NEXT_PAGE_KEY = "next_page"
LAST_UPDATED_AT_KEY = "last_updated_at"
LAST_NUMBER_KEY = "last_issue_number"
RESUME_WITHIN_PAGE_KEY = "resume_within_page"
# Offsets from the first release stored the last emitted issue's updated_at
# under this key, together with the page it came from
LEGACY_UPDATED_AT_KEY = "updated_at"


class IssueCursor(BaseCursor):
    """Resumption state for one repository.

    ``watermark`` is the ``since`` instant of the current window and
    ``next_page`` the page to request within it. ``last_updated_at`` and
    ``last_issue_number`` identify the last issue handed downstream.

    ``resume_within_page`` marks an offset taken in the middle of a page: the
    page is requested again and everything up to the last emitted issue is
    skipped. States reached at the end of a cycle never carry it.
    """

    watermark: datetime = Field(..., description="Issues updated before this are ingested")
    next_page: int = Field(default=1, ge=1, description="Page to fetch within the window")
    last_updated_at: Optional[datetime] = Field(
        default=None, description="updated_at of the last emitted issue"
    )
    last_issue_number: Optional[int] = Field(
        default=None, description="Number of the last emitted issue"
    )
    resume_within_page: bool = Field(
        default=False, description="Skip issues of the page already emitted"
    )

    @field_validator("watermark", "last_updated_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    def has_seen(self, updated_at: datetime, number: int) -> bool:
        """Whether an issue of the resumed page was already emitted.

        Only applies when resuming within a page. Issues updated strictly
        before the last emitted one came earlier in the ascending order.
        Issues sharing its instant cannot be ordered reliably, so only the
        exact issue is treated as seen, or all of them when the number is
        unknown.
        """
        if not self.resume_within_page or self.last_updated_at is None:
            return False
        if updated_at < self.last_updated_at:
            return True
        if updated_at > self.last_updated_at:
            return False
        return self.last_issue_number is None or number == self.last_issue_number

    def to_offset(self) -> Dict[str, str]:
        """Serialize to a flat string mapping for the host's offset store."""
        offset = {
            WATERMARK_KEY: format_iso(self.watermark),
            NEXT_PAGE_KEY: str(self.next_page),
        }
        if self.last_updated_at is not None:
            offset[LAST_UPDATED_AT_KEY] = format_iso(self.last_updated_at)
        if self.last_issue_number is not None:
            offset[LAST_NUMBER_KEY] = str(self.last_issue_number)
        if self.resume_within_page:
            offset[RESUME_WITHIN_PAGE_KEY] = "true"
        return offset

    @classmethod
    def from_offset(cls, offset: Mapping[str, object]) -> "IssueCursor":
        """Rebuild a cursor from a stored offset.

        A legacy offset only knows the last emitted instant; its page belongs
        to a window that can no longer be reconstructed, so the window is
        restarted at that instant and the issues sharing it are skipped.

        Raises:
            ValueError: If no watermark is present or a value cannot be parsed
        """
        raw_watermark = offset.get(WATERMARK_KEY)
        if not raw_watermark:
            legacy_updated_at = offset.get(LEGACY_UPDATED_AT_KEY)
            if not legacy_updated_at:
                raise ValueError("offset has no watermark")
            instant = _as_datetime(legacy_updated_at)
            return cls(
                watermark=instant,
                next_page=1,
                last_updated_at=instant,
                resume_within_page=True,
            )

        last_updated_at = offset.get(LAST_UPDATED_AT_KEY)
        last_number = offset.get(LAST_NUMBER_KEY)
        return cls(
            watermark=_as_datetime(raw_watermark),
            next_page=int(offset.get(NEXT_PAGE_KEY) or 1),
            last_updated_at=_as_datetime(last_updated_at) if last_updated_at else None,
            last_issue_number=int(last_number) if last_number is not None else None,
            resume_within_page=_as_flag(offset.get(RESUME_WITHIN_PAGE_KEY)),
        )


def _as_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    return parse_iso(str(value))


def _as_flag(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true" if value is not None else False
