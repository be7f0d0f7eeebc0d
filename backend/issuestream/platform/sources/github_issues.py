r"""GitHub issues page fetcher.

Lists the issues of one repository updated since a watermark, one page per
call, oldest update first:

    GET /repos/{owner}/{repo}/issues?state=all&sort=updated&direction=asc
        &since=2024-11-03T10:00:00Z&page=2&per_page=100

``since`` is inclusive: issues updated exactly at ``since`` are returned.
Pull requests are returned by this endpoint too and carry a ``pull_request``
marker.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, stop_after_attempt
from tenacity.wait import wait_base

from issuestream.core.config import settings
from issuestream.core.datetime_utils import format_iso
from issuestream.core.exceptions import (
    EntityDecodeError,
    FetchRejectedError,
    RateLimitedError,
    TransientFetchError,
    unpack_validation_error,
)
from issuestream.core.logging import ContextualLogger
from issuestream.core.logging import logger as default_logger
from issuestream.platform.entities import GitHubIssueEntity
from issuestream.platform.rate_limiters import GitHubRateLimiter
from issuestream.platform.sources.retry_helpers import (
    is_rate_limited,
    log_retry_attempt,
    retry_if_timeout_or_server_error,
    wait_transient_backoff,
)
from issuestream.platform.sync.types import IssuePage

MAX_PER_PAGE = 100


class GitHubIssuesFetcher:
    """Fetches pages of a repository's issues ordered by ascending ``updated_at``."""

    MAX_ATTEMPTS = 3

    def __init__(
        self,
        owner: str,
        repository: str,
        *,
        rate_limiter: Optional[GitHubRateLimiter] = None,
        per_page: int = MAX_PER_PAGE,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_wait: wait_base = wait_transient_backoff,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the fetcher.

        Args:
            owner: Repository owner (user or organization)
            repository: Repository name
            rate_limiter: Receives the budget reported by every response
            per_page: Page size requested from the API (1..100)
            token: Personal access token; falls back to settings.GITHUB_TOKEN
            base_url: API base URL; falls back to settings.GITHUB_API_URL
            timeout: Request timeout in seconds; falls back to settings
            client: HTTP client to use instead of creating one
            retry_wait: Wait strategy between in-call retries of transient failures
            logger: Contextual logger
        """
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise ValueError(f"per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}")

        self.owner = owner
        self.repository = repository
        self.per_page = per_page
        self.rate_limiter = rate_limiter
        self._token = token if token is not None else settings.GITHUB_TOKEN
        self._base_url = (base_url or settings.GITHUB_API_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self._client = client
        self._owns_client = client is None
        self._retry_wait = retry_wait
        self.logger = logger or default_logger.with_context(
            owner=owner, repository=repository, component="fetcher"
        )

    @property
    def url(self) -> str:
        """Issues listing endpoint of the repository."""
        return f"{self._base_url}/repos/{self.owner}/{self.repository}/issues"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": settings.GITHUB_API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, page: int, since: datetime) -> IssuePage:
        """Fetch one page of issues updated at or after ``since``.

        Args:
            page: 1-based page index within the ``since`` window
            since: Inclusive lower bound on ``updated_at``

        Returns:
            The decoded page

        Raises:
            ValueError: If ``page`` < 1
            TransientFetchError: Timeouts, connection failures, 5xx, rate limits
            FetchRejectedError: Other 4xx responses
            EntityDecodeError: Payload does not match the issue schema
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        params = {
            "state": "all",
            "sort": "updated",
            "direction": "asc",
            "since": format_iso(since),
            "page": page,
            "per_page": self.per_page,
        }
        response = await self._get(params)

        if is_rate_limited(response):
            retry_after = self.rate_limiter.seconds_until_reset() if self.rate_limiter else 0.0
            self.logger.warning(
                f"Rate limited by GitHub (HTTP {response.status_code}), "
                f"budget resets in {retry_after:.0f}s"
            )
            raise RateLimitedError(retry_after, status_code=response.status_code)
        if response.status_code >= 400:
            raise FetchRejectedError(response.status_code, _error_message(response))

        issues = self._decode(response, page)
        self.logger.debug(f"Fetched page {page} since {params['since']}: {len(issues)} issue(s)")
        return IssuePage(page=page, since=since, issues=tuple(issues))

    async def _get(self, params: Dict[str, Any]) -> httpx.Response:
        """GET the listing, retrying timeouts and 5xx responses in-call."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.MAX_ATTEMPTS),
                retry=retry_if_timeout_or_server_error,
                wait=self._retry_wait,
                before_sleep=log_retry_attempt(self.logger, "GitHub issues"),
                reraise=True,
            ):
                with attempt:
                    response = await self._get_client().get(
                        self.url, headers=self._headers(), params=params
                    )
                    if self.rate_limiter is not None:
                        self.rate_limiter.update_from_headers(response.headers)
                    if response.status_code >= 500:
                        response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransientFetchError(
                f"GitHub returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TransportError as e:
            raise TransientFetchError(
                f"Request to GitHub failed: {type(e).__name__}: {e}"
            ) from e
        return response

    def _decode(self, response: httpx.Response, page: int) -> List[GitHubIssueEntity]:
        try:
            payload = response.json()
        except ValueError as e:
            raise EntityDecodeError(f"Response is not valid JSON: {e}", page=page) from e

        if not isinstance(payload, list):
            raise EntityDecodeError(
                f"Expected a JSON array of issues, got {type(payload).__name__}", page=page
            )

        issues = []
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                raise EntityDecodeError(
                    f"Item {index} is {type(item).__name__}, expected an object", page=page
                )
            try:
                issues.append(GitHubIssueEntity.from_api(item))
            except ValidationError as e:
                details = unpack_validation_error(e)["errors"]
                raise EntityDecodeError(
                    f"Issue #{item.get('number', '?')} (item {index}) is malformed: {details}",
                    page=page,
                ) from e
        return issues


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message") or response.reason_phrase
    except (ValueError, AttributeError):
        return response.reason_phrase
