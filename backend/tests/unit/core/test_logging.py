"""Unit tests for the contextual logger."""

import logging

from issuestream.core.config import Settings
from issuestream.core.logging import ContextualLogger, LoggerConfigurator


class TestContextualLogger:
    """Dimensions are rendered after the message."""

    def test_with_context_appends_dimensions(self, caplog):
        base = LoggerConfigurator.configure_logger("issuestream.test.context")
        contextual = base.with_context(owner="octo", repository="hello")

        with caplog.at_level(logging.INFO, logger="issuestream.test.context"):
            contextual.info("Fetched 3 issue(s)")

        assert "Fetched 3 issue(s) [owner=octo repository=hello]" in caplog.messages

    def test_with_context_drops_none_values(self):
        base = LoggerConfigurator.configure_logger("issuestream.test.none")

        contextual = base.with_context(owner="octo", component=None)

        assert contextual.dimensions == {"owner": "octo"}

    def test_with_context_does_not_mutate_parent(self):
        base = LoggerConfigurator.configure_logger("issuestream.test.parent", {"a": 1})

        child = base.with_context(b=2)

        assert base.dimensions == {"a": 1}
        assert child.dimensions == {"a": 1, "b": 2}

    def test_with_prefix(self, caplog):
        base = LoggerConfigurator.configure_logger("issuestream.test.prefix")

        with caplog.at_level(logging.INFO, logger="issuestream.test.prefix"):
            base.with_prefix("[worker] ").info("started")

        assert "[worker] started" in caplog.messages

    def test_configure_logger_returns_contextual_logger(self):
        assert isinstance(
            LoggerConfigurator.configure_logger("issuestream.test.type"), ContextualLogger
        )


class TestSettings:
    """Process settings come from the environment."""

    def test_defaults(self, monkeypatch):
        for name in ("GITHUB_API_URL", "GITHUB_TOKEN", "HTTP_TIMEOUT_SECONDS", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.GITHUB_API_URL == "https://api.github.com"
        assert settings.GITHUB_TOKEN is None
        assert settings.HTTP_TIMEOUT_SECONDS == 30.0
        assert settings.LOG_LEVEL == "INFO"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
        monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "12.5")

        settings = Settings(_env_file=None)

        assert settings.GITHUB_TOKEN == "ghp_test"
        assert settings.HTTP_TIMEOUT_SECONDS == 12.5
