"""
Structured logging for the hierarchy runtime.

structlog with console rendering for development and JSON rendering for
deployments. Loggers obtained through get_logger() before configuration
fall back to structlog's defaults, so tests need no setup.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor


def add_logger_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add logger name to log entry (PrintLogger has no stdlib name)."""
    event_dict["logger"] = getattr(logger, "name", None) or "orgflow"
    return event_dict


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Configure structlog once at process start.

    fmt: "console" for coloured human output, "json" for one JSON object
    per line.
    """
    level_no = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if fmt == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # Third-party libraries (uvicorn, fastapi) log through stdlib logging.
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level_no,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name or "orgflow")
