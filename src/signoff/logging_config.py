"""Structured logging configuration using structlog."""

import logging
import sys

import structlog

from signoff.config import APP_VERSION

SERVICE_NAME = "signoff-api"


def _add_service(logger, method_name: str, event_dict: dict) -> dict:
    """Stamp every record with the emitting service and its version."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("service_version", APP_VERSION)
    return event_dict


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Configure structlog for structured logging.

    Args:
        log_level: Logging level string (debug/info/warning/error).
        json_output: If True, output JSON (production). If False, colored console (dev).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        _add_service,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def bind_request_context(trace_id: str, actor_uid: str | None = None) -> None:
    """Bind contextual variables to the current async context."""
    ctx = {"trace_id": trace_id}
    if actor_uid:
        ctx["actor_uid"] = actor_uid
    structlog.contextvars.bind_contextvars(**ctx)


def clear_request_context() -> None:
    """Clear bound context variables after a request."""
    structlog.contextvars.clear_contextvars()
