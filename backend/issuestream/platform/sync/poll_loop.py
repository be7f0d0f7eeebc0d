"""Incremental poll loop.

One cycle moves through ``IDLE -> FETCHING -> TRANSLATING -> ADVANCING``:

1. wait for the rate limiter
2. fetch ``state.next_page`` of the window starting at ``state.watermark``
3. translate every not-yet-delivered issue into an event
4. derive the next state:

   - full page (``n == batch_size``): more issues may share this window, so
     request the next page and keep the watermark
   - short page (``0 < n < batch_size``): the window is exhausted, move the
     watermark just past the newest ``updated_at`` seen and restart at page 1
   - empty page: restart at page 1; the watermark only moves when the
     previous cycle ended on a full page whose newest issue lies inside the
     window, otherwise the same window would be paged through again

``since`` is inclusive upstream, so the watermark is bumped by the timestamp
resolution of the API (one second for GitHub). Two issues updated within the
same second can therefore be split across a watermark boundary and the
second one skipped; this is accepted in exchange for guaranteed progress.

The loop never mutates the state it is given and raises before returning a
new state if anything in the cycle fails.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from issuestream.core.exceptions import EntityDecodeError
from issuestream.core.logging import ContextualLogger
from issuestream.core.logging import logger as default_logger
from issuestream.core.shared_models import CyclePhase, PageOutcome
from issuestream.platform.cursors import IssueCursor
from issuestream.platform.entities import GitHubIssueEntity
from issuestream.platform.events import OutboundEvent
from issuestream.platform.sync.emitter import EventEmitter
from issuestream.platform.sync.protocols import PageFetcher, RateLimiter
from issuestream.platform.sync.types import CycleResult

DEFAULT_RESOLUTION = timedelta(seconds=1)


class PollLoop:
    """Runs poll cycles for one repository."""

    def __init__(
        self,
        fetcher: PageFetcher,
        rate_limiter: RateLimiter,
        emitter: EventEmitter,
        *,
        batch_size: int = 100,
        resolution: timedelta = DEFAULT_RESOLUTION,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the poll loop.

        Args:
            fetcher: Fetches one page per cycle
            rate_limiter: Consulted before each fetch and at batch boundaries
            emitter: Builds the outbound events
            batch_size: Page size; a page of exactly this size is "full"
            resolution: Smallest timestamp increment of the upstream API
            logger: Contextual logger
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if resolution <= timedelta(0):
            raise ValueError("resolution must be positive")

        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.emitter = emitter
        self.batch_size = batch_size
        self.resolution = resolution
        self.logger = logger or default_logger.with_context(component="poll_loop")

    async def run_cycle(self, state: IssueCursor) -> CycleResult:
        """Run one poll cycle from ``state``.

        Returns:
            Events in ascending ``updated_at`` order and the next state

        Raises:
            TransientFetchError: Fetch failed transiently; retry from ``state``
            FetchRejectedError: Upstream rejected the request
            EntityDecodeError: The page could not be decoded or translated
            IngestionCancelledError: Shutdown requested during a rate-limit wait
        """
        phases = [CyclePhase.IDLE]
        await self.rate_limiter.acquire()

        phases.append(CyclePhase.FETCHING)
        page = await self.fetcher.fetch(state.next_page, state.watermark)

        phases.append(CyclePhase.TRANSLATING)
        # sorted() is stable: issues sharing an instant keep the API order
        issues = sorted(page.issues, key=lambda issue: issue.updated_at)
        max_seen = max((issue.updated_at for issue in issues), default=None)
        outcome = self._classify(len(issues))
        next_state = self._next_state(state, outcome, issues, max_seen)

        events, skipped = self._translate(state, next_state, issues, page.page)
        if issues:
            self.logger.info(
                f"Fetched {len(issues)} record(s) from page {page.page}, "
                f"emitted {len(events)}"
            )

        phases.append(CyclePhase.ADVANCING)
        if outcome is not PageOutcome.FULL:
            await self.rate_limiter.mark_batch_boundary()

        self.logger.debug(
            f"Cycle {outcome.value}: watermark {state.watermark.isoformat()} -> "
            f"{next_state.watermark.isoformat()}, page {state.next_page} -> "
            f"{next_state.next_page}"
        )
        return CycleResult(
            events=events,
            state=next_state,
            previous_state=state,
            outcome=outcome,
            fetched=len(issues),
            skipped=skipped,
            max_seen_updated_at=max_seen,
            phases=tuple(phases),
        )

    def _classify(self, size: int) -> PageOutcome:
        if size >= self.batch_size:
            return PageOutcome.FULL
        if size > 0:
            return PageOutcome.SHORT
        return PageOutcome.EMPTY

    def _next_state(
        self,
        state: IssueCursor,
        outcome: PageOutcome,
        issues: List[GitHubIssueEntity],
        max_seen: Optional[datetime],
    ) -> IssueCursor:
        """Derive the state that follows ``state`` after this page."""
        if outcome is PageOutcome.EMPTY:
            watermark = state.watermark
            if state.last_updated_at is not None and state.last_updated_at >= state.watermark:
                watermark = state.last_updated_at + self.resolution
            return state.model_copy(
                update={"watermark": watermark, "next_page": 1, "resume_within_page": False}
            )

        last = issues[-1]
        update = {"resume_within_page": False}
        if state.last_updated_at is None or last.updated_at >= state.last_updated_at:
            update.update(last_updated_at=last.updated_at, last_issue_number=last.number)

        if outcome is PageOutcome.FULL:
            update["next_page"] = state.next_page + 1
        else:
            update["watermark"] = max(state.watermark, max_seen + self.resolution)
            update["next_page"] = 1
        return state.model_copy(update=update)

    def _translate(
        self,
        state: IssueCursor,
        next_state: IssueCursor,
        issues: List[GitHubIssueEntity],
        page: int,
    ) -> tuple[List[OutboundEvent], int]:
        """Emit one event per issue not delivered before, all or nothing.

        Every event but the last resumes by refetching this page and skipping
        through the issue it carries; the last one resumes from ``next_state``.
        Issues are only skipped when ``state`` itself resumes within this page.
        """
        events: List[OutboundEvent] = []
        skipped = 0
        last_index = len(issues) - 1
        for index, issue in enumerate(issues):
            if state.has_seen(issue.updated_at, issue.number):
                skipped += 1
                continue
            within_page = index != last_index
            if within_page:
                watermark, page_cursor = state.watermark, state.next_page
            else:
                watermark, page_cursor = next_state.watermark, next_state.next_page
            try:
                events.append(
                    self.emitter.emit(
                        issue, watermark, page_cursor, resume_within_page=within_page
                    )
                )
            except Exception as e:
                raise EntityDecodeError(
                    f"Failed to translate issue #{issue.number}: {e}", page=page
                ) from e

        if skipped:
            self.logger.debug(
                f"Skipped {skipped} issue(s) of page {page} delivered before the resumed offset"
            )
        return events, skipped
