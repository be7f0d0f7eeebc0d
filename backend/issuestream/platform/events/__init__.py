"""Outbound event schemas."""

from .github import IssueKey, IssueUserValue, IssueValue, OutboundEvent, PullRequestValue

__all__ = [
    "IssueKey",
    "IssueUserValue",
    "IssueValue",
    "OutboundEvent",
    "PullRequestValue",
]
