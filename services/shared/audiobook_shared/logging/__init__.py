"""Structured logging for the gateway."""

from .config import (
    CORRELATION_ID_KEY,
    configure_logging,
    correlation_scope,
    get_logger,
    service_info,
)

__all__ = [
    "CORRELATION_ID_KEY",
    "configure_logging",
    "correlation_scope",
    "get_logger",
    "service_info",
]
