"""structlog setup shared by the gateway processes.

Request-scoped values (the correlation id, the authenticated user) live in
structlog's context variables, so every logger in the task picks them up
through ``merge_contextvars`` without being passed around.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

CORRELATION_ID_KEY = "correlation_id"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "passlib", "uvicorn.access")


@contextmanager
def correlation_scope(correlation_id: str, **extra: Any) -> Iterator[None]:
    """Bind ``correlation_id`` (and any extra keys) for the duration of the block."""
    with structlog.contextvars.bound_contextvars(**{CORRELATION_ID_KEY: correlation_id}, **extra):
        yield


def service_info(name: str, version: str) -> Processor:
    """Processor stamping every event with the emitting service."""

    def _add(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", name)
        event_dict.setdefault("version", version)
        return event_dict

    return _add


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "audiobook-api",
    service_version: str = "0.1.0",
) -> None:
    """Route structlog through stdlib logging on stdout.

    Args:
        level: Root log level name.
        json_format: JSON lines when True, coloured console output otherwise.
        service_name: Value of the ``service`` key on every event.
        service_version: Value of the ``version`` key on every event.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        service_info(service_name, service_version),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    log_level = logging.getLevelName(level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
