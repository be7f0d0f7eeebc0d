"""Logging setup with contextual dimensions.

Every component logs through a ``ContextualLogger``: a ``LoggerAdapter`` that
carries identity dimensions (owner, repository, component, ...) and renders
them after the message so log lines from concurrent workers stay separable.

Usage:
    from issuestream.core.logging import logger

    worker_logger = logger.with_context(owner="octo", repository="hello")
    worker_logger.info("Fetched 12 issue(s)")
"""

import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple

from issuestream.core.config import settings

_ROOT_LOGGER_NAME = "issuestream"
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that appends context dimensions to each record."""

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[Dict[str, Any]] = None,
        prefix: str = "",
    ):
        """Create a contextual logger.

        Args:
            logger: Underlying stdlib logger
            dimensions: Key/value pairs attached to every record
            prefix: Text prepended to every message
        """
        super().__init__(logger, {})
        self.dimensions: Dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, Any]:
        """Attach prefix, dimensions and caller-provided extras."""
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = {"dimensions": extra}
        if extra:
            rendered = " ".join(f"{key}={value}" for key, value in extra.items())
            return f"{self.prefix}{msg} [{rendered}]", kwargs
        return f"{self.prefix}{msg}", kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with additional dimensions."""
        merged = {**self.dimensions, **{k: v for k, v in dimensions.items() if v is not None}}
        return ContextualLogger(self.logger, merged, self.prefix)

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a new logger whose messages start with ``prefix``."""
        return ContextualLogger(self.logger, self.dimensions, prefix)


class LoggerConfigurator:
    """Builds named contextual loggers under the package root logger."""

    _configured = False

    @classmethod
    def configure_root(cls, level: Optional[str] = None) -> None:
        """Install a stderr handler on the package root logger (once)."""
        root = logging.getLogger(_ROOT_LOGGER_NAME)
        root.setLevel((level or settings.LOG_LEVEL).upper())
        if cls._configured:
            return
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False
        cls._configured = True

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Get a contextual logger for ``name`` with the given dimensions."""
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger(_ROOT_LOGGER_NAME)
