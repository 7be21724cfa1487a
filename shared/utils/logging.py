"""structlog setup and per-request log context."""

import logging
import sys
from typing import Any

import structlog

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("aiobotocore", "botocore", "uvicorn.access")


def bind_request_context(**values: Any) -> None:
    """Attach key/values (e.g. user_id) to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**values)


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> None:
    """Configure structlog and stdlib logging for a service.

    Request-scoped values (correlation_id, method, path, user_id) come from
    structlog's contextvars and are merged into every event.

    Args:
        service_name: Added as ``service`` to every event
        log_level: Root log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, colored console output otherwise
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)
