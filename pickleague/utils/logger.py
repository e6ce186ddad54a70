"""
PICK LEAGUE — Structured Logging
structlog setup shared by the API, the engines and the adapters.
"""
import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict

import structlog

from pickleague.config.settings import get_settings

# Chatty third-party loggers that only matter when debugging
_QUIET_LOGGERS = ("aiohttp.access", "sqlalchemy.engine", "aiosqlite")


def _add_service(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict.setdefault("service", "pickleague")
    return event_dict


def setup_logging() -> None:
    """JSON lines in production, coloured console output when DEBUG is set."""
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else logging.WARNING)


def get_logger(name: str = None) -> structlog.BoundLogger:
    return structlog.get_logger(name or "pickleague")


@contextmanager
def log_context(**values: Any):
    """Bind values (competition_id, pass_id, ...) to every log line in this task."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
