"""Rate limiter for the GitHub REST API.

GitHub reports the request budget on every response:

- ``X-RateLimit-Limit``: requests allowed per window
- ``X-RateLimit-Remaining``: requests left in the current window
- ``X-RateLimit-Reset``: epoch seconds when the window resets
- ``Retry-After``: seconds to back off (secondary rate limits)

The limiter turns those signals into waits before each request. When the API
sends no budget signal it falls back to a fixed minimum interval between
requests. Waits are cancellable: ``stop()`` interrupts them with
``IngestionCancelledError`` and asyncio task cancellation works as usual.
"""

import asyncio
import math
import time
from typing import Callable, Dict, Mapping, Optional

from issuestream.core.exceptions import IngestionCancelledError
from issuestream.core.logging import ContextualLogger
from issuestream.core.logging import logger as default_logger


class GitHubRateLimiter:
    """Request budget tracker shared by every fetch that uses one token.

    ``acquire()`` holds an asyncio lock while it waits and decrements the
    budget, so workers sharing an instance are linearised and never spend the
    same remaining request twice.
    """

    def __init__(
        self,
        cooldown_seconds: float = 10.0,
        min_interval_seconds: float = 0.0,
        low_budget_threshold: int = 10,
        clock: Callable[[], float] = time.time,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the limiter.

        Args:
            cooldown_seconds: Pause enforced at every batch boundary
            min_interval_seconds: Minimum gap between requests without budget signal
            low_budget_threshold: Below this many remaining calls, spread them out
            clock: Epoch-seconds clock (injectable for tests)
            logger: Logger to report waits on
        """
        self.cooldown_seconds = cooldown_seconds
        self.min_interval_seconds = min_interval_seconds
        self.low_budget_threshold = low_budget_threshold
        self._clock = clock
        self._logger = logger or default_logger.with_context(component="rate_limiter")

        self.limit: Optional[int] = None
        self.remaining: Optional[int] = None
        self.reset_at: Optional[float] = None
        self._blocked_until: Optional[float] = None
        self._last_request_at: Optional[float] = None

        self._lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self._stats: Dict[str, float] = {"acquired": 0, "waits": 0, "waited_seconds": 0.0}

    @property
    def stats(self) -> Dict[str, float]:
        """Counters for acquired requests and time spent waiting."""
        return dict(self._stats)

    @property
    def stopped(self) -> bool:
        """Whether shutdown was requested."""
        return self._stopped.is_set()

    def stop(self) -> None:
        """Interrupt current and future waits."""
        self._stopped.set()

    async def acquire(self) -> float:
        """Wait until a request may be issued, then spend one unit of budget.

        Returns:
            Seconds waited (0 when the request could go out immediately)

        Raises:
            IngestionCancelledError: If ``stop()`` was called before or during the wait
        """
        async with self._lock:
            if self.stopped:
                raise IngestionCancelledError("Rate limiter stopped")

            wait_time = self.compute_wait(self._clock())
            if wait_time > 0:
                self._logger.debug(
                    f"Rate limit throttling (remaining={self.remaining}, "
                    f"reset_at={self.reset_at}). Waiting {wait_time:.2f}s"
                )
                await self._sleep(wait_time)

            now = self._clock()
            if self.reset_at is not None and now >= self.reset_at:
                # Window rolled over; the next response reports the fresh budget
                self.remaining = None
                self.reset_at = None
            if self._blocked_until is not None and now >= self._blocked_until:
                self._blocked_until = None
            if self.remaining is not None and self.remaining > 0:
                self.remaining -= 1

            self._last_request_at = now
            self._stats["acquired"] += 1
            return wait_time

    async def mark_batch_boundary(self) -> None:
        """Pause for the fixed cooldown after a window has been exhausted."""
        if self.cooldown_seconds > 0:
            self._logger.debug(f"Batch boundary reached, cooling down {self.cooldown_seconds}s")
            await self._sleep(self.cooldown_seconds)

    def compute_wait(self, now: float) -> float:
        """Seconds to wait before the next request at time ``now``."""
        if self._blocked_until is not None and self._blocked_until > now:
            return self._blocked_until - now

        if self.remaining is not None and self.reset_at is not None and self.reset_at > now:
            if self.remaining <= 0:
                return self.reset_at - now
            if self.remaining <= self.low_budget_threshold:
                # Spread the last few calls evenly over the rest of the window
                return float(math.ceil((self.reset_at - now) / self.remaining))

        if self.min_interval_seconds > 0 and self._last_request_at is not None:
            return max(0.0, self._last_request_at + self.min_interval_seconds - now)

        return 0.0

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        """Record the budget reported by an API response.

        Malformed header values are ignored.
        """
        limit = _int_header(headers, "X-RateLimit-Limit")
        remaining = _int_header(headers, "X-RateLimit-Remaining")
        reset = _int_header(headers, "X-RateLimit-Reset")
        retry_after = _int_header(headers, "Retry-After")

        if limit is not None:
            self.limit = limit
        if remaining is not None:
            self.remaining = remaining
        if reset is not None:
            self.reset_at = float(reset)
        if retry_after is not None:
            self._blocked_until = self._clock() + retry_after

    def seconds_until_reset(self) -> float:
        """Seconds until requests may resume, 0 when not blocked."""
        now = self._clock()
        candidates = [0.0]
        if self._blocked_until is not None:
            candidates.append(self._blocked_until - now)
        if self.remaining == 0 and self.reset_at is not None:
            candidates.append(self.reset_at - now)
        return max(candidates)

    async def _sleep(self, seconds: float) -> None:
        """Wait ``seconds`` unless shutdown is requested first."""
        self._stats["waits"] += 1
        self._stats["waited_seconds"] += seconds
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise IngestionCancelledError(f"Shutdown requested during {seconds:.1f}s wait")


def _int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        default_logger.debug(f"Ignoring malformed {name} header: {value!r}")
        return None


_shared_limiters: Dict[str, GitHubRateLimiter] = {}
_SHARED_OPTIONS = ("cooldown_seconds", "min_interval_seconds", "low_budget_threshold")


def get_shared_rate_limiter(account_key: str, **kwargs) -> GitHubRateLimiter:
    """Get the process-wide limiter for an account, creating it on first use.

    GitHub budgets are per token, so every worker using the same token must
    draw from one limiter. ``kwargs`` only apply when the limiter is created;
    later callers asking for different options get a warning.
    """
    limiter = _shared_limiters.get(account_key)
    if limiter is None:
        limiter = GitHubRateLimiter(**kwargs)
        _shared_limiters[account_key] = limiter
        return limiter

    ignored = {
        name: value
        for name, value in kwargs.items()
        if name in _SHARED_OPTIONS and getattr(limiter, name) != value
    }
    if ignored:
        current = {name: getattr(limiter, name) for name in ignored}
        default_logger.warning(
            f"Shared rate limiter already configured with {current}; ignoring {ignored}"
        )
    return limiter


def stop_shared_rate_limiters() -> None:
    """Stop every shared limiter (process shutdown)."""
    for limiter in _shared_limiters.values():
        limiter.stop()
    _shared_limiters.clear()
