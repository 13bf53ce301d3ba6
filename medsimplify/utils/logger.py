"""
Structured logging for MedSimplify.

Events are rendered as JSON lines in production and as console output
when debugging. Each event is tagged with the component that emitted it.
Nothing is configured at import time; the application configures logging
from its own settings when it starts.
"""

import logging
import sys

import structlog
from structlog.types import Processor

# Libraries that log every outbound HTTP call or PDF parsing detail
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "google_genai", "pdfminer")


def _level_number(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(log_level: str, json_format: bool = True) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        log_level: Level name such as "INFO" or "DEBUG"
        json_format: Render JSON lines (True) or console output (False)
    """
    numeric_level = _level_number(log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_format:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )

    # uvicorn and the SDKs log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(component: str) -> structlog.BoundLogger:
    """Logger whose events carry a ``component`` field."""
    return structlog.get_logger(component=component)
