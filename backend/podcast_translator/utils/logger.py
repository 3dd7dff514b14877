"""
Structured JSON logging for the Podcast Translator backend.

Every event carries the correlation ID of the HTTP request or background
translation job that produced it.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from structlog.types import FilteringBoundLogger

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Client libraries that log every connection or token refresh at INFO
CHATTY_LOGGERS = ("kafka", "google.auth", "google.api_core", "urllib3")

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    return correlation_id_ctx.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Bind ``correlation_id`` (or a fresh UUID) to the current context."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_ctx.set(correlation_id)
    return correlation_id


def current_or_new_correlation_id() -> str:
    """Correlation ID of the running request, created on demand outside one."""
    return get_correlation_id() or set_correlation_id()


def add_correlation_id(logger: FilteringBoundLogger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def summarize_binary_fields(logger: FilteringBoundLogger, method_name: str,
                            event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Replace raw audio payloads with their size so they never reach the log."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray)):
            event_dict[key] = f"<{len(value)} bytes>"
    return event_dict


def setup_logging(log_level: str = "INFO") -> FilteringBoundLogger:
    """
    Configure structlog and the standard library root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Root structlog logger
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            add_correlation_id,
            summarize_binary_fields,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=level)

    if level > logging.DEBUG:
        for name in CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.get_logger()


def get_logger(name: Optional[str] = None) -> FilteringBoundLogger:
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
