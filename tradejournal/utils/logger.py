"""
Structured logging for the journal API.

Every event goes through structlog. Journal payloads carry base64
screenshots and free-text notes, so a redaction processor scrubs event
fields before rendering, and request-scoped fields (user, route) ride
along through contextvars.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from typing import Any, Iterable, Optional

import structlog

from tradejournal.utils.config import get_settings

REDACTED = "***REDACTED***"
REDACTED_KEYS = frozenset({"password", "token", "secret", "authorization", "screenshot"})
MAX_TEXT_LENGTH = 200

_USER_PATH_RE = re.compile(r"^/api/users/([^/]+)")


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_log_data(value)
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    if isinstance(value, str):
        if value.startswith("data:") and ";base64," in value:
            return REDACTED
        if len(value) > MAX_TEXT_LENGTH:
            return value[:MAX_TEXT_LENGTH] + "..."
    return value


def sanitize_log_data(data: dict[str, Any], keys: Iterable[str] = REDACTED_KEYS) -> dict[str, Any]:
    """
    Copy of `data` safe to log: sensitive keys are masked, inline data URLs
    are dropped wherever they appear and long notes are clipped.
    """
    keys = frozenset(k.lower() for k in keys)
    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in keys:
            sanitized[key] = REDACTED
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value, keys)
        else:
            sanitized[key] = _scrub(value)
    return sanitized


def redact_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor applying sanitize_log_data to every event."""
    event = event_dict.pop("event", None)
    clean = sanitize_log_data(event_dict)
    if event is not None:
        clean["event"] = event
    return clean


def build_processors(json_logs: bool) -> list:
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_event,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None,
                  json_logs: Optional[bool] = None) -> None:
    """Configure stdlib handlers and structlog; safe to call more than once."""
    settings = get_settings()
    level = level or settings.log_level
    log_file = settings.log_file if log_file is None else log_file
    json_logs = settings.log_json if json_logs is None else json_logs

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a"))

    logging.basicConfig(format="%(message)s", level=_level(level), handlers=handlers, force=True)

    structlog.configure(
        processors=build_processors(json_logs),
        wrapper_class=structlog.make_filtering_bound_logger(_level(level)),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(method: str, path: str) -> dict[str, Any]:
    """Bind the route, and the journal owner when the path names one, to later events."""
    context: dict[str, Any] = {"method": method, "path": path}
    match = _USER_PATH_RE.match(path)
    if match:
        context["user_id"] = match.group(1)
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)
    return context


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
