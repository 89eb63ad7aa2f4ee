"""Observability module for structured logging."""

from src.features.observability.logging import (
    configure_logging,
    get_logger,
    request_context,
)


__all__ = [
    "configure_logging",
    "get_logger",
    "request_context",
]
