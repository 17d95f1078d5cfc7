"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from appwizard.logging import NOISY_LOGGERS, bind_context, configure_logging


@pytest.fixture(autouse=True)
def reset_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    saved = structlog.get_config()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.configure(**saved)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestConfigureLogging:
    def test_json_lines_on_stderr(self, capsys):
        """JSON events go to stderr and leave stdout empty."""
        configure_logging(logging.INFO, json_logs=True)

        structlog.get_logger("appwizard.test").info("terraform_apply", module="storage")

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "terraform_apply"
        assert event["module"] == "storage"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filters_events(self, capsys):
        """Events below the configured level are dropped."""
        configure_logging(logging.WARNING, json_logs=True)

        structlog.get_logger("appwizard.test").info("hidden")

        assert "hidden" not in capsys.readouterr().err

    def test_sqlalchemy_quiet_unless_debug(self):
        """SQLAlchemy logs only at DEBUG."""
        configure_logging(logging.INFO, json_logs=True)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

        configure_logging(logging.DEBUG, json_logs=True)
        assert logging.getLogger("sqlalchemy.engine").level == logging.NOTSET

    def test_bound_context(self, capsys):
        """Bound fields appear on every event."""
        configure_logging(logging.INFO, json_logs=True)

        bind_context(provider="aws").info("reconcile_start")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["provider"] == "aws"
