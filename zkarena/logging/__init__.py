"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from zkarena.logging import get_logger, setup_logging

    # Setup at application start
    setup_logging()

    # Get logger for a module
    logger = get_logger(__name__)

    # Log with context
    logger.info("session_created", session_id="s-1", game="arena")
    logger.warning("transition_rejected", reason=exc.reason)
"""

from zkarena.logging.logger import (
    bind_context,
    censor_secrets,
    clear_context,
    get_logger,
    setup_logging,
)


__all__ = [
    "bind_context",
    "censor_secrets",
    "clear_context",
    "get_logger",
    "setup_logging",
]
