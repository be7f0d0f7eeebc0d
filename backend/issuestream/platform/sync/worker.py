"""Ingestion worker: one repository, strictly sequential poll cycles.

The worker exposes the inbound host contract (``load`` then repeated
``run_one_cycle``) and a self-hosted ``run`` loop that publishes every event
to a sink and commits its offset before the next cycle starts.
"""

import asyncio
from typing import Dict, List, Mapping, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_never, wait_exponential

from issuestream.core.exceptions import (
    IngestCycleError,
    IngestionCancelledError,
    TransientFetchError,
)
from issuestream.core.logging import ContextualLogger
from issuestream.core.logging import logger as default_logger
from issuestream.core.shared_models import PageOutcome
from issuestream.domains.offsets.protocols import OffsetStore
from issuestream.domains.sinks.protocols import EventSink
from issuestream.platform.cursors import IssueCursor
from issuestream.platform.events import OutboundEvent
from issuestream.platform.sync.config import IngestConfig
from issuestream.platform.sync.cursor import CursorStore
from issuestream.platform.sync.poll_loop import PollLoop
from issuestream.platform.sync.types import CycleResult

MAX_BACKOFF_SECONDS = 300


class IngestionWorker:
    """Drives the poll loop for one (owner, repository) partition."""

    def __init__(
        self,
        config: IngestConfig,
        poll_loop: PollLoop,
        cursor_store: CursorStore,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the worker.

        Args:
            config: Worker options
            poll_loop: Runs one cycle from a given state
            cursor_store: Holds the in-flight resumption state
            logger: Contextual logger
        """
        self.config = config
        self.poll_loop = poll_loop
        self.cursor_store = cursor_store
        self.logger = logger or default_logger.with_context(
            owner=config.owner, repository=config.repository
        )

        self.cycles = 0
        self.last_result: Optional[CycleResult] = None
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._cycle_task: Optional[asyncio.Task] = None

    @property
    def partition(self) -> Dict[str, str]:
        """Source partition this worker ingests."""
        return self.poll_loop.emitter.partition

    @property
    def stopped(self) -> bool:
        """Whether ``stop()`` was called."""
        return self._stop_event.is_set()

    def load(self, saved_offset: Optional[Mapping[str, object]] = None) -> IssueCursor:
        """Initialize the resumption state from the host's saved offset.

        Raises:
            ConfigurationError: If ``saved_offset`` cannot be parsed
        """
        state = self.cursor_store.load(saved_offset)
        if self.cursor_store.loaded_from_offset:
            self.logger.info(
                f"Resuming {self.config.full_name} from watermark "
                f"{state.watermark.isoformat()} page {state.next_page}"
            )
        else:
            self.logger.info(
                f"No saved offset for {self.config.full_name}, starting from "
                f"{state.watermark.isoformat()}"
            )
        return state

    async def run_one_cycle(self) -> List[OutboundEvent]:
        """Run one poll cycle and advance the in-flight state.

        Returns:
            Events to deliver, each carrying its own resumption offset

        Raises:
            IngestCycleError: The cycle failed; the state is unchanged
            IngestionCancelledError: Shutdown requested during a wait
            InvalidStateError: If ``load()`` was not called
        """
        async with self._lock:
            result = await self.poll_loop.run_cycle(self.cursor_store.current)
            self.cursor_store.advance(result.state)
            self.last_result = result
            self.cycles += 1
            return result.events

    async def run(
        self,
        sink: EventSink,
        offset_store: OffsetStore,
        poll_interval_seconds: float = 0.0,
    ) -> None:
        """Ingest until ``stop()`` is called.

        Each event is published and its offset committed before the next one.
        A failing commit ends the loop with ``OffsetCommitError``.

        Args:
            sink: Receives every event
            offset_store: Durable offset storage for this partition
            poll_interval_seconds: Pause after a cycle that exhausted its window
        """
        self.load(await offset_store.load(self.partition))

        try:
            while not self.stopped:
                events = await self._run_cycle_with_retry(poll_interval_seconds)
                await self._deliver(events, sink, offset_store)
                if self.last_result.outcome is not PageOutcome.FULL:
                    await self._sleep(poll_interval_seconds)
        except IngestionCancelledError:
            self.logger.info(f"Ingestion of {self.config.full_name} stopped")
        except asyncio.CancelledError:
            if not self.stopped:
                raise
            self.logger.info(f"Ingestion of {self.config.full_name} cancelled mid-cycle")

    def stop(self) -> None:
        """End ``run`` and interrupt the cycle in flight, if any."""
        self._stop_event.set()
        if self._cycle_task is not None and not self._cycle_task.done():
            self._cycle_task.cancel()

    async def aclose(self) -> None:
        """Release the fetcher's resources."""
        aclose = getattr(self.poll_loop.fetcher, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _run_cycle_with_retry(self, poll_interval_seconds: float) -> List[OutboundEvent]:
        """Run a cycle, repeating it from the unchanged state until it succeeds."""
        backoff = wait_exponential(multiplier=1, min=1, max=MAX_BACKOFF_SECONDS)

        def wait(retry_state) -> float:
            if isinstance(retry_state.outcome.exception(), TransientFetchError):
                return poll_interval_seconds
            return backoff(retry_state)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(IngestCycleError),
            stop=stop_never,
            wait=wait,
            sleep=self._sleep,
            before_sleep=self._log_cycle_failure,
            reraise=True,
        ):
            with attempt:
                self._cycle_task = asyncio.ensure_future(self.run_one_cycle())
                try:
                    return await self._cycle_task
                finally:
                    self._cycle_task = None

    def _log_cycle_failure(self, retry_state) -> None:
        error = retry_state.outcome.exception()
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        if isinstance(error, TransientFetchError):
            self.logger.warning(
                f"Transient failure on attempt {retry_state.attempt_number}, "
                f"retrying in {delay:.1f}s: {error}"
            )
        else:
            self.logger.error(
                f"Cycle failed on attempt {retry_state.attempt_number} "
                f"({type(error).__name__}), retrying in {delay:.1f}s: {error}"
            )

    async def _deliver(
        self, events: List[OutboundEvent], sink: EventSink, offset_store: OffsetStore
    ) -> None:
        """Publish and commit events in order, then the cycle-end state if it differs."""
        for event in events:
            await sink.publish(event)
            await offset_store.commit(event.partition, event.offset)

        final_offset = self.cursor_store.offset()
        if not events or events[-1].offset != final_offset:
            await offset_store.commit(self.partition, final_offset)

    async def _sleep(self, seconds: float) -> None:
        """Wait ``seconds`` unless ``stop()`` is called first."""
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise IngestionCancelledError("Shutdown requested")
