"""
Structured logging configuration for the Cloud Drive backend.

Both structlog loggers and standard library loggers
(``logging.getLogger(__name__)``) end up on one stdout handler that renders
JSON. Request-scoped context bound with ``bind_request_context`` is merged
into every entry, whichever of the two logged it.
"""

import logging
import sys

import structlog

# Run for every entry, structlog or stdlib
SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def build_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter that renders stdlib records and structlog events as JSON."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Example:
        >>> configure_logging("INFO")
        >>> logging.getLogger("app.services").info("Uploaded %s", "a.txt")
        {"event": "Uploaded a.txt", "request_id": "...", "level": "info", ...}
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def bind_request_context(
    request_id: str | None = None,
    user_id: str | None = None,
    ip_address: str | None = None,
) -> None:
    """
    Bind request context to all subsequent log entries.

    Only non-empty values are bound. The context lives in the current async
    context, so concurrent requests never see each other's values.
    """
    context = {}
    if request_id:
        context["request_id"] = request_id
    if user_id:
        context["user_id"] = user_id
    if ip_address:
        context["ip_address"] = ip_address

    if context:
        structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    """Clear request context from the current async context."""
    structlog.contextvars.clear_contextvars()
