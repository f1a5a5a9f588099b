"""Structured logging configuration with structlog.

Call ``configure_logging`` once at application startup, then use
``structlog.get_logger(__name__)`` everywhere:

    log = structlog.get_logger(__name__)
    log.info("request_event_applied", request_id=str(request.id), request_event="ACCEPT")

JSON output is meant for log aggregation; console output for local work.
"""
import logging

import structlog
from structlog.typing import Processor

from campus_exchange.config import Settings


def _resolve_level(level_name: str) -> int:
    return getattr(logging, level_name.upper(), logging.INFO)


def configure_logging(settings: Settings) -> None:
    shared_processors: list[Processor] = [
        # Merge context from contextvars (async support)
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(settings.log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
