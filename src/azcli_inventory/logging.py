"""Structured logging configuration for azcli-inventory.

Uses structlog for structured, context-rich logging that supports
both human-readable console output and machine-readable JSON format.

This is the developer log. The user-facing diagnostic stream lives in
:mod:`azcli_inventory.events`.
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from azcli_inventory.config import Settings


def configure_logging(settings: "Settings | None" = None) -> None:
    """Configure structured logging based on settings.

    Args:
        settings: Application settings. If None, uses defaults.
    """
    log_level = logging.WARNING
    log_format = "console"

    if settings is not None:
        log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
        log_format = settings.log_format

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Also configure standard library logging for third-party libs
    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log calls in the current context.

    Example:
        bind_context(operation="refresh")
        logger.info("fetch_started")  # Will include operation
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


class Loggers:
    """Pre-configured logger instances for azcli-inventory components."""

    @staticmethod
    def process() -> structlog.stdlib.BoundLogger:
        """Logger for the shell adapter and process runner."""
        return get_logger("azcli_inventory.process")

    @staticmethod
    def orchestrator() -> structlog.stdlib.BoundLogger:
        """Logger for the fetch pipeline, probes and IP discovery."""
        return get_logger("azcli_inventory.orchestrator")

    @staticmethod
    def cli() -> structlog.stdlib.BoundLogger:
        """Logger for CLI components."""
        return get_logger("azcli_inventory.cli")

    @staticmethod
    def config() -> structlog.stdlib.BoundLogger:
        """Logger for configuration."""
        return get_logger("azcli_inventory.config")
