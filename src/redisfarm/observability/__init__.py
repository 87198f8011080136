"""Observability module for structured logging."""

from .logging import (
    get_logger,
    log_command_failure,
    log_subscription_event,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Logging helpers
    "log_command_failure",
    "log_subscription_event",
]
