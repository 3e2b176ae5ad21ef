"""structlog setup for the DeepForm backend.

structlog renders every entry, and the stdlib root logger is routed through
the same formatter so uvicorn and SQLAlchemy lines come out alike: JSON in
production, colored console output when ``debug`` is set.

Each entry carries the request's correlation id plus whatever was bound
with ``bind_request_context`` for the current request (owner, session or
campaign id), so one interview can be followed across stages and streams.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

from deepform.core.config import Settings

# Libraries that log every request or statement at INFO
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "anthropic", "sqlalchemy.engine")


def add_correlation_id(logger, method, event_dict):
    """Inject correlation_id from asgi-correlation-id context into every log entry."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def bind_request_context(**ids: str | None) -> None:
    """Attach identifiers to every entry logged for the rest of this request.

    None values are skipped so callers can pass optional ids straight through.
    """
    structlog.contextvars.bind_contextvars(**{key: value for key, value in ids.items() if value})


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_structlog(settings: Settings) -> None:
    """Configure structlog and the stdlib root logger from settings.

    Must run before any module calls ``structlog.get_logger``: loggers are
    cached on first use and keep the processor chain they were built with.
    """
    level = "DEBUG" if settings.debug else settings.log_level.upper()
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()
    shared = _shared_processors()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
                "foreign_pre_chain": shared,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "structlog",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": level},
        "loggers": {name: {"level": "WARNING"} for name in _NOISY_LOGGERS},
    })

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
