"""Structured logging setup using structlog.

Everything goes through stdlib logging so that records from httpx and
aiohttp share the same renderer as our own structlog events.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

_REDACTED = "***REDACTED***"

# Keys whose values are never logged, wherever they appear in an event
_SECRET_KEYS = frozenset({"api_token", "webhook_secret", "secret", "authorization", "signature"})

# Inline credentials inside free text, e.g. "Authorization: Basic abc=="
_SECRET_TEXT = re.compile(
    r"(token|secret|password|authorization)[\"']?\s*[:=]\s*[\"']?(?:basic\s+)?[\w\-\.=+/]+",
    re.IGNORECASE,
)

_NOISY_LOGGERS = ("httpx", "httpcore", "aiohttp.access")


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _SECRET_TEXT.sub(rf"\1={_REDACTED}", value)
    if isinstance(value, dict):
        return {
            k: _REDACTED if str(k).lower() in _SECRET_KEYS and v else _scrub(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_scrub(v) for v in value]
    return value


def _redact_secrets(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Mask credentials in event values, including nested webhook payloads."""
    for key, value in event_dict.items():
        if key.lower() in _SECRET_KEYS and value:
            event_dict[key] = _REDACTED
        elif key != "event":
            event_dict[key] = _scrub(value)
    return event_dict


def _stderr_handler(renderer: structlog.types.Processor) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog through a single stderr handler on the root logger."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if numeric_level <= logging.DEBUG:
        print(
            "WARNING: DEBUG logging is enabled. Full webhook payloads and Jira "
            "responses will be logged. Do not use in production.",
            file=sys.stderr,
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            _redact_secrets,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    root = logging.getLogger()
    root.handlers[:] = [_stderr_handler(renderer)]
    root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
