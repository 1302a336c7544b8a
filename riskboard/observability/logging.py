"""Structured logging configuration."""

import logging
import sys
from typing import Any, TextIO

import structlog


_SHARED_PROCESSORS: tuple[structlog.types.Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
)


def _renderer(json_format: bool, output: TextIO) -> structlog.types.Processor:
    if json_format:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=output.isatty())


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structlog for the aggregator.

    Every event gets a level and an ISO timestamp, plus any request-scoped
    fields bound with bind_request_context(). Events below level are
    filtered before rendering.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: One JSON object per line if True, console text otherwise.
    """
    structlog.configure(
        processors=[*_SHARED_PROCESSORS, _renderer(json_format, output)],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # redis and httpx log through the standard library
    logging.basicConfig(format="%(message)s", stream=output, level=level)


def bind_request_context(request_id: str, **fields: Any) -> None:
    """Attach an aggregate request id (and extra fields) to later events.

    Args:
        request_id: Unique identifier of the inbound request.
        **fields: Additional request-scoped fields, e.g. command name.
    """
    structlog.contextvars.bind_contextvars(request_id=request_id, **fields)


def clear_request_context() -> None:
    """Remove every request-scoped field from later events."""
    structlog.contextvars.clear_contextvars()
