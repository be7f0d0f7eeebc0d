"""Worker factory - wires the ingestion components for one repository.

The factory is responsible for:
1. Resolving the rate limiter (shared per token, or private to the worker)
2. Building the page fetcher, event emitter and poll loop
3. Wiring them into an IngestionWorker with its cursor store
"""

from typing import Optional

from issuestream.core.config import Settings, settings
from issuestream.core.logging import ContextualLogger, LoggerConfigurator
from issuestream.core.shared_models import RateLimitLevel
from issuestream.platform.rate_limiters import GitHubRateLimiter, get_shared_rate_limiter
from issuestream.platform.sources import GitHubIssuesFetcher
from issuestream.platform.sync.config import IngestConfig
from issuestream.platform.sync.cursor import CursorStore
from issuestream.platform.sync.emitter import EventEmitter
from issuestream.platform.sync.poll_loop import PollLoop
from issuestream.platform.sync.worker import IngestionWorker

ANONYMOUS_ACCOUNT = "anonymous"


class IngestionWorkerFactory:
    """Factory for ingestion workers."""

    @classmethod
    def create_worker(
        cls,
        config: IngestConfig,
        app_settings: Settings = settings,
        rate_limiter: Optional[GitHubRateLimiter] = None,
        fetcher: Optional[GitHubIssuesFetcher] = None,
    ) -> IngestionWorker:
        """Create a worker for ``config.owner``/``config.repository``.

        Args:
            config: Worker options
            app_settings: Process settings (token, API URL, timeout)
            rate_limiter: Limiter to use instead of resolving one
            fetcher: Fetcher to use instead of building one
        """
        logger = cls._build_logger(config)
        rate_limiter = rate_limiter or cls._resolve_rate_limiter(config, app_settings, logger)

        if fetcher is None:
            fetcher = GitHubIssuesFetcher(
                config.owner,
                config.repository,
                rate_limiter=rate_limiter,
                per_page=config.batch_size,
                token=app_settings.GITHUB_TOKEN,
                base_url=app_settings.GITHUB_API_URL,
                timeout=app_settings.HTTP_TIMEOUT_SECONDS,
                logger=logger.with_context(component="fetcher"),
            )

        emitter = EventEmitter(config.owner, config.repository, config.topic)
        poll_loop = PollLoop(
            fetcher,
            rate_limiter,
            emitter,
            batch_size=config.batch_size,
            resolution=config.resolution,
            logger=logger.with_context(component="poll_loop"),
        )
        cursor_store = CursorStore(emitter.partition, config)

        logger.debug(
            f"Created worker (batch_size={config.batch_size}, "
            f"rate_limit_level={config.rate_limit_level.value})"
        )
        return IngestionWorker(config, poll_loop, cursor_store, logger=logger)

    @staticmethod
    def _build_logger(config: IngestConfig) -> ContextualLogger:
        return LoggerConfigurator.configure_logger(
            f"issuestream.worker.{config.owner}.{config.repository}",
            dimensions={"owner": config.owner, "repository": config.repository},
        )

    @staticmethod
    def _resolve_rate_limiter(
        config: IngestConfig, app_settings: Settings, logger: ContextualLogger
    ) -> GitHubRateLimiter:
        options = {
            "cooldown_seconds": config.cooldown_seconds,
            "min_interval_seconds": config.min_request_interval_seconds,
            "low_budget_threshold": config.low_budget_threshold,
        }
        if config.rate_limit_level is RateLimitLevel.ACCOUNT:
            account_key = app_settings.GITHUB_TOKEN or ANONYMOUS_ACCOUNT
            return get_shared_rate_limiter(account_key, **options)
        return GitHubRateLimiter(logger=logger.with_context(component="rate_limiter"), **options)
