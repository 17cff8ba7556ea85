"""
Structured logging for the agent process.

Module loggers are plain ``logging.getLogger(__name__)`` loggers with
%-style messages. ``setup_logging`` routes their records through the same
structlog processor chain as structlog loggers, so context bound with
``bind_context`` / ``bound_context`` (cycle_id, alert_id, provider, job)
appears on every line: JSON in production, colored console otherwise.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog
from structlog.types import Processor

from src.config.settings import Settings, get_settings

# HTTP and SDK clients used for delivery and completions
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "openai", "anthropic")


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(settings: Settings | None = None, stream: TextIO | None = None) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        settings: Source of environment and log level (defaults to
            ``get_settings()``).
        stream: Output stream (defaults to stdout).

    Usage:
        setup_logging()
        with bound_context(cycle_id="a1b2c3d4", provider="openai"):
            logger.info("Review cycle finished: %d eligible", 3)
    """
    settings = settings or get_settings()
    shared = _shared_processors()

    if settings.is_production:
        renderer: Processor = structlog.processors.JSONRenderer()
        shared.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None)

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.log_level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger; key-value fields go in the call."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every later log line in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


@contextmanager
def bound_context(**kwargs: Any) -> Iterator[None]:
    """Bind fields for the duration of a block, restoring the previous values."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
