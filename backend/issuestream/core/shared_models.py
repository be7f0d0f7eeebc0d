"""Shared models for the backend."""

from enum import Enum


class CyclePhase(str, Enum):
    """Phases a poll cycle moves through, in order."""

    IDLE = "idle"
    FETCHING = "fetching"
    TRANSLATING = "translating"
    ADVANCING = "advancing"


class PageOutcome(str, Enum):
    """How a fetched page moved the resumption state."""

    FULL = "full"  # more results may remain in this window: next page
    SHORT = "short"  # window exhausted: watermark rolled forward
    EMPTY = "empty"  # nothing returned: page reset, watermark kept


class IssueState(str, Enum):
    """GitHub issue state."""

    OPEN = "open"
    CLOSED = "closed"


class RateLimitLevel(str, Enum):
    """Rate limiting level for sources.

    Determines whether workers share a budget.
    """

    ACCOUNT = "account"  # all workers using one token share the limit
    WORKER = "worker"  # each worker has an independent limit
