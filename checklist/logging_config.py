"""
Structured logging for the checklist, using structlog wrapping stdlib.

What gets logged:
- info: task starts, completions, cancellations, daily resets and rolls,
  plus runner start and stop
- warning: corrupt notifications or values that were dropped, config
  fallbacks, rolled back batches
- debug: every schedule, cancel and skipped stale delivery

Output always goes to stderr (or the given stream) so that the CLI's JSON
result on stdout stays parseable. The runner in daemon mode logs JSON lines;
interactive use gets the console renderer. ``bind_context`` attaches fields
such as the component or CLI action to every following log line.

Environment:
    CHECKLIST_LOG_LEVEL   DEBUG/INFO/WARNING/ERROR (default INFO)
    CHECKLIST_LOG_FORMAT  "json" for JSON lines

Usage:
    from checklist.logging_config import bind_context, get_logger, setup_logging

    setup_logging()
    bind_context(component="cli", action="start")
    get_logger(__name__).info("Started task 'stretch'")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, TextIO

import structlog


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    if level is None:
        level = os.environ.get("CHECKLIST_LOG_LEVEL", "INFO")

    if json_output is None:
        json_output = os.environ.get("CHECKLIST_LOG_FORMAT", "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        # Plain stdlib records (e.g. from asyncio) get the same fields
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)


def bind_context(**values: Any) -> None:
    """Attach fields to every log line emitted from this context."""
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["bind_context", "get_logger", "setup_logging"]
