"""Tests for ``lmsdb.core.logging``."""

from __future__ import annotations

import structlog
from structlog.testing import capture_logs

from lmsdb.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


class TestConfigureLogging:
    def teardown_method(self):
        structlog.reset_defaults()
        clear_context()

    def test_json_configuration(self):
        configure_logging(level="DEBUG", json_format=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_configuration(self):
        configure_logging(level="WARNING", json_format=False, add_timestamp=False)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert not any(isinstance(p, structlog.processors.TimeStamper) for p in processors)


class TestContext:
    def teardown_method(self):
        clear_context()

    def test_bound_context_reaches_events(self):
        bind_context(course="math101")
        assert structlog.contextvars.get_contextvars() == {"course": "math101"}

    def test_log_context_unbinds(self):
        with LogContext(course="math101", entity="user"):
            assert structlog.contextvars.get_contextvars()["entity"] == "user"
        assert structlog.contextvars.get_contextvars() == {}

    def test_events_are_captured(self):
        with capture_logs() as logs:
            get_logger("lmsdb.test").info("table_created", entity="user")
        assert logs == [{"event": "table_created", "entity": "user", "log_level": "info"}]
