"""
structlog setup for the appwizard CLI.

Log events go to stderr so that machine-readable command output on stdout
(``appwizard order --format json``) stays parseable. An interactive terminal
gets the human console renderer; pipes and CI get one JSON object per line.
"""

import logging
import sys
from typing import Any

import structlog

# Libraries whose INFO chatter drowns the reconciler's own events.
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _renderer(json_logs: bool) -> Any:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(level: int | str = logging.WARNING, json_logs: bool | None = None) -> None:
    """
    Configure the structlog/standard logging bridge.

    Args:
        level: Root log level; DEBUG also lets SQLAlchemy log
        json_logs: Force JSON (True) or console (False) output; None picks
            console for a terminal and JSON otherwise
    """
    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(json_logs),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)

    quiet = logging.getLogger().getEffectiveLevel() > logging.DEBUG
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING if quiet else logging.NOTSET)


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Logger carrying fixed fields, e.g. ``bind_context(provider="aws")``."""
    return structlog.get_logger().bind(**kwargs)
