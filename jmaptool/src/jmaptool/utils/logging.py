"""Diagnostic logging helpers with level parsing and field redaction.

What:
  Configure the ``jmaptool`` logger hierarchy to write human-readable lines to
  stderr, and render structured ``key=value`` context for those lines with
  sensitive values removed.

Why:
  Console output on stdout is the report operators read; diagnostics belong on
  stderr so both streams can be redirected independently. Credentials pass
  through the action flows, so every field logged through :func:`log_fields`
  is scrubbed before it reaches a handler.

How:
  :func:`setup_logging` replaces any handler it installed earlier with a fresh
  ``logging.StreamHandler`` bound to the current ``sys.stderr``. ``verbose``
  forces ``DEBUG``; unknown level names fall back to ``INFO``.
  :func:`log_fields` redacts known keys, quotes values containing whitespace,
  and forwards a single formatted message to the stdlib logger.

Interfaces:
  :data:`ROOT_LOGGER`, :data:`REDACTED`, :func:`parse_log_level`,
  :func:`setup_logging`, :func:`get_logger`, :func:`log_fields`.

Invariants & Safety:
  - Keys in :data:`SENSITIVE_KEYS` are always replaced with ``[redacted]``,
    whatever their value.
  - Calling :func:`setup_logging` repeatedly never stacks handlers.
"""
from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional


ROOT_LOGGER = "jmaptool"
REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "access_token", "token", "authorization"})

_LOG_FORMAT = "time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"
_LEVELS: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class _ToolHandler(logging.StreamHandler):
    """Marker subclass so :func:`setup_logging` only removes its own handlers."""


def parse_log_level(name: str) -> int:
    """Map ``debug``/``info``/``warn``/``error`` to a logging level, defaulting to INFO."""

    return _LEVELS.get(name.upper(), logging.INFO)


def setup_logging(verbose: bool = False, level: str = "info") -> logging.Logger:
    """Install the stderr handler on the ``jmaptool`` logger and return it.

    Args:
      verbose: When ``True`` the effective level is ``DEBUG`` regardless of
        ``level``.
      level: Level name, case-insensitive.

    Returns:
      The configured ``jmaptool`` logger.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, _ToolHandler):
            logger.removeHandler(handler)
    effective = logging.DEBUG if verbose else parse_log_level(level)
    handler = _ToolHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(effective)
    return logger


def get_logger(component: str) -> logging.Logger:
    """Return the child logger ``jmaptool.<component>``."""

    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def redact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``fields`` with sensitive keys replaced, recursing into dicts."""

    result: Dict[str, Any] = {}
    for key, value in fields.items():
        if key.lower() in SENSITIVE_KEYS:
            result[key] = REDACTED
        elif isinstance(value, dict):
            result[key] = redact(value)
        else:
            result[key] = value
    return result


def _render_value(value: Any) -> str:
    """Quote values that would break ``key=value`` parsing."""

    text = str(value)
    if not text or any(ch.isspace() or ch in '"=' for ch in text):
        return json.dumps(text)
    return text


def format_fields(fields: Dict[str, Any]) -> str:
    """Render redacted ``fields`` as space-separated ``key=value`` pairs."""

    return " ".join(f"{key}={_render_value(value)}" for key, value in redact(fields).items())


def log_fields(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    exc_info: Optional[BaseException] = None,
    **fields: Any,
) -> None:
    """Log ``message`` followed by redacted ``key=value`` pairs.

    Example:
      ``log_fields(LOGGER, logging.INFO, "discovery_completed", host="h", accounts=1)``
      emits ``discovery_completed host=h accounts=1``.
    """

    if not logger.isEnabledFor(level):
        return
    rendered = format_fields(fields)
    if rendered:
        logger.log(level, "%s %s", message, rendered, exc_info=exc_info)
    else:
        logger.log(level, "%s", message, exc_info=exc_info)


__all__ = [
    "ROOT_LOGGER",
    "REDACTED",
    "SENSITIVE_KEYS",
    "parse_log_level",
    "setup_logging",
    "get_logger",
    "redact",
    "format_fields",
    "log_fields",
]
