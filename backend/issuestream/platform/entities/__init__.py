"""The issuestream entities module.

Contains the decoded upstream records.
"""

from .github import GitHubIssueEntity, GitHubPullRequestRef, GitHubUser

__all__ = [
    "GitHubIssueEntity",
    "GitHubPullRequestRef",
    "GitHubUser",
]
