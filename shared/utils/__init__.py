"""Shared utilities for cloud storage services."""

from shared.utils.db import get_db_session, init_db
from shared.utils.logging import bind_request_context, configure_logging, get_logger
from shared.utils.metrics import MetricsMiddleware, create_counter

__all__ = [
    "bind_request_context",
    "configure_logging",
    "get_logger",
    "get_db_session",
    "init_db",
    "MetricsMiddleware",
    "create_counter",
]
