"""structlog configuration shared by the CLI and the tool server."""

import logging
import re
import sys
from typing import Any

import structlog

SENSITIVE_KEY_PARTS = ("password", "secret", "token", "username", "credential")
# Too short to match as a substring ("mapping", "shipping")
SENSITIVE_KEY_SEGMENT = re.compile(r"(^|[_\-.])pin([_\-.]|$)")
REDACTED = "***"


def redact_sensitive_fields(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask values of keys that look like credentials."""
    for key in list(event_dict):
        if key == "event":
            continue
        lowered = key.lower()
        if SENSITIVE_KEY_SEGMENT.search(lowered) or any(
            part in lowered for part in SENSITIVE_KEY_PARTS
        ):
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog for JSON or console output on stderr."""
    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        redact_sensitive_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )
