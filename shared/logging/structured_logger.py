"""Structured logging configuration using structlog.

Every service in the repository (the booking API and the UI automation
runner) logs through this module so that log lines share one shape:
event name, ISO timestamp, level, logger name, service/environment tags and,
when a span is active, OpenTelemetry trace identifiers.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor


def app_context(app: str = "booknview", environment: str = "production") -> Processor:
    """Build a processor tagging entries with the application and environment.

    Args:
        app: Service name
        environment: Deployment environment

    Returns:
        structlog processor that fills ``app`` and ``environment`` unless
        the entry already carries them
    """
    tags = {"app": app, "environment": environment}

    def add_app_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in tags.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_app_context


def add_trace_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add OpenTelemetry trace context to log entries."""
    from opentelemetry import trace

    span = trace.get_current_span()
    if span is not None and span.is_recording():
        span_context = span.get_span_context()
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")

    return event_dict


def build_processors(json_logs: bool, tags: Optional[Processor] = None) -> list[Processor]:
    """Build the processor chain shared by every configured service.

    Args:
        json_logs: Render JSON when True, a coloured console line otherwise
        tags: Processor adding the app and environment tags

    Returns:
        Ordered structlog processors ending with a renderer
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        tags or app_context(),
        add_trace_context,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    return processors


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: Optional[str] = None,
    environment: Optional[str] = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        service_name: Name of the service for log tagging
        environment: Deployment environment tag added to every entry
    """
    tags = app_context(service_name or "booknview", environment or "production")

    structlog.configure(
        processors=build_processors(json_logs, tags),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    # Third-party loggers are noisy at INFO
    for noisy in ("pymongo", "urllib3", "selenium", "aiohttp"):
        logging.getLogger(noisy).setLevel(max(logging.WARNING, logging.getLogger().level))


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to all subsequent log entries in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
