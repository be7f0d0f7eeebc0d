"""Unit tests for GitHubIssuesFetcher.

HTTP is served by ``httpx.MockTransport``; in-call retries use ``wait_none``
so the retry paths run instantly.
"""

from datetime import datetime, timezone

import httpx
import pytest
from tenacity import wait_none

from issuestream.core.exceptions import (
    EntityDecodeError,
    FetchRejectedError,
    RateLimitedError,
    TransientFetchError,
)
from issuestream.platform.rate_limiters import GitHubRateLimiter
from issuestream.platform.sources import GitHubIssuesFetcher

BASE_URL = "https://api.github.test"
SINCE = datetime(2024, 11, 3, 10, 0, 0, tzinfo=timezone.utc)


def _build_fetcher(handler, **kwargs) -> GitHubIssuesFetcher:
    """Build a fetcher whose client is served by ``handler``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("base_url", BASE_URL)
    kwargs.setdefault("retry_wait", wait_none())
    return GitHubIssuesFetcher("octo", "hello", client=client, **kwargs)


class Recorder:
    """Handler that replays canned responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------


class TestRequest:
    """The listing request sent to GitHub."""

    @pytest.mark.asyncio
    async def test_query_parameters(self):
        recorder = Recorder(httpx.Response(200, json=[]))
        fetcher = _build_fetcher(recorder, per_page=50)

        await fetcher.fetch(2, SINCE)

        request = recorder.requests[0]
        assert request.url.path == "/repos/octo/hello/issues"
        assert dict(request.url.params) == {
            "state": "all",
            "sort": "updated",
            "direction": "asc",
            "since": "2024-11-03T10:00:00Z",
            "page": "2",
            "per_page": "50",
        }

    @pytest.mark.asyncio
    async def test_anonymous_request_has_no_authorization(self):
        recorder = Recorder(httpx.Response(200, json=[]))
        fetcher = _build_fetcher(recorder)

        await fetcher.fetch(1, SINCE)

        assert "Authorization" not in recorder.requests[0].headers
        assert recorder.requests[0].headers["Accept"] == "application/vnd.github.v3+json"

    @pytest.mark.asyncio
    async def test_token_is_sent(self):
        recorder = Recorder(httpx.Response(200, json=[]))
        fetcher = _build_fetcher(recorder, token="ghp_secret")

        await fetcher.fetch(1, SINCE)

        assert recorder.requests[0].headers["Authorization"] == "token ghp_secret"

    @pytest.mark.asyncio
    async def test_page_below_one_is_rejected(self):
        fetcher = _build_fetcher(Recorder(httpx.Response(200, json=[])))

        with pytest.raises(ValueError):
            await fetcher.fetch(0, SINCE)

    def test_per_page_out_of_range(self):
        with pytest.raises(ValueError):
            _build_fetcher(Recorder(httpx.Response(200, json=[])), per_page=101)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecode:
    """Successful responses are decoded into an IssuePage."""

    @pytest.mark.asyncio
    async def test_returns_issues_in_api_order(self, issue_payload, t0):
        payload = [issue_payload(2, t0), issue_payload(1, t0)]
        fetcher = _build_fetcher(Recorder(httpx.Response(200, json=payload)))

        page = await fetcher.fetch(1, SINCE)

        assert page.page == 1
        assert page.since == SINCE
        assert [issue.number for issue in page.issues] == [2, 1]

    @pytest.mark.asyncio
    async def test_empty_page(self):
        fetcher = _build_fetcher(Recorder(httpx.Response(200, json=[])))

        page = await fetcher.fetch(1, SINCE)

        assert page.size == 0

    @pytest.mark.asyncio
    async def test_malformed_issue_fails_whole_page(self, issue_payload, t0):
        broken = issue_payload(2, t0)
        del broken["title"]
        fetcher = _build_fetcher(
            Recorder(httpx.Response(200, json=[issue_payload(1, t0), broken]))
        )

        with pytest.raises(EntityDecodeError) as exc_info:
            await fetcher.fetch(3, SINCE)

        assert exc_info.value.page == 3
        assert "#2" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_object_payload_is_rejected(self):
        fetcher = _build_fetcher(Recorder(httpx.Response(200, json={"message": "hi"})))

        with pytest.raises(EntityDecodeError, match="JSON array"):
            await fetcher.fetch(1, SINCE)

    @pytest.mark.asyncio
    async def test_non_json_body_is_rejected(self):
        fetcher = _build_fetcher(Recorder(httpx.Response(200, text="<html>oops</html>")))

        with pytest.raises(EntityDecodeError, match="not valid JSON"):
            await fetcher.fetch(1, SINCE)

    @pytest.mark.asyncio
    async def test_non_object_item_is_rejected(self):
        fetcher = _build_fetcher(Recorder(httpx.Response(200, json=[1, 2])))

        with pytest.raises(EntityDecodeError, match="expected an object"):
            await fetcher.fetch(1, SINCE)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    """Error classification."""

    @pytest.mark.asyncio
    async def test_server_error_is_retried_then_succeeds(self, issue_payload, t0):
        recorder = Recorder(
            httpx.Response(502), httpx.Response(200, json=[issue_payload(1, t0)])
        )
        fetcher = _build_fetcher(recorder)

        page = await fetcher.fetch(1, SINCE)

        assert page.size == 1
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_persistent_server_error_is_transient(self):
        recorder = Recorder(httpx.Response(503))
        fetcher = _build_fetcher(recorder)

        with pytest.raises(TransientFetchError) as exc_info:
            await fetcher.fetch(1, SINCE)

        assert exc_info.value.status_code == 503
        assert len(recorder.requests) == GitHubIssuesFetcher.MAX_ATTEMPTS

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        recorder = Recorder(httpx.ReadTimeout("read timed out"))
        fetcher = _build_fetcher(recorder)

        with pytest.raises(TransientFetchError):
            await fetcher.fetch(1, SINCE)

        assert len(recorder.requests) == GitHubIssuesFetcher.MAX_ATTEMPTS

    @pytest.mark.asyncio
    async def test_not_found_is_rejected_without_retry(self):
        recorder = Recorder(httpx.Response(404, json={"message": "Not Found"}))
        fetcher = _build_fetcher(recorder)

        with pytest.raises(FetchRejectedError) as exc_info:
            await fetcher.fetch(1, SINCE)

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Not Found"
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_forbidden_without_rate_limit_headers_is_rejected(self):
        fetcher = _build_fetcher(Recorder(httpx.Response(403, json={"message": "Forbidden"})))

        with pytest.raises(FetchRejectedError):
            await fetcher.fetch(1, SINCE)

    @pytest.mark.asyncio
    async def test_primary_rate_limit(self):
        now = 1_730_628_000.0
        limiter = GitHubRateLimiter(clock=lambda: now)
        headers = {
            "X-RateLimit-Limit": "60",
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(now + 120)),
        }
        fetcher = _build_fetcher(
            Recorder(httpx.Response(403, headers=headers, json={"message": "API rate limit"})),
            rate_limiter=limiter,
        )

        with pytest.raises(RateLimitedError) as exc_info:
            await fetcher.fetch(1, SINCE)

        assert exc_info.value.retry_after == 120.0
        assert exc_info.value.status_code == 403
        assert limiter.remaining == 0
        assert limiter.compute_wait(now) == 120.0

    @pytest.mark.asyncio
    async def test_secondary_rate_limit(self):
        fetcher = _build_fetcher(Recorder(httpx.Response(429, headers={"Retry-After": "7"})))

        with pytest.raises(RateLimitedError) as exc_info:
            await fetcher.fetch(1, SINCE)

        assert isinstance(exc_info.value, TransientFetchError)


class TestBudgetTracking:
    """Every response feeds the rate limiter."""

    @pytest.mark.asyncio
    async def test_headers_update_limiter(self):
        limiter = GitHubRateLimiter()
        headers = {"X-RateLimit-Limit": "5000", "X-RateLimit-Remaining": "4999"}
        fetcher = _build_fetcher(
            Recorder(httpx.Response(200, headers=headers, json=[])), rate_limiter=limiter
        )

        await fetcher.fetch(1, SINCE)

        assert limiter.limit == 5000
        assert limiter.remaining == 4999


@pytest.mark.asyncio
async def test_aclose_keeps_injected_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    fetcher = GitHubIssuesFetcher("octo", "hello", client=client)

    await fetcher.aclose()

    assert not client.is_closed
    await client.aclose()
