"""Structured JSON logging for the booksearch tools.

Logs always go to stderr by default: ``booksearch search`` and ``booksearch
validate`` print their results as JSON on stdout and the two streams must not
mix.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import IO, Any

import orjson


PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
REDACTED = "[REDACTED]"

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}
_MAX_EXTRA_STR_LEN = 500
# Loggers of libraries that are chatty below WARNING
_QUIET_LOGGERS = ("bs4",)


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _encode_fallback(value: Any) -> Any:
    """orjson ``default`` hook for values it cannot serialize natively."""

    if isinstance(value, (set, frozenset)):
        try:
            return sorted(value)
        except TypeError:
            return list(value)
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return repr(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields become top-level keys."""

    REDACT_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization"})
    MAX_MESSAGE_LEN = 2000

    def format(self, record: logging.LogRecord) -> str:
        return orjson.dumps(self.build_entry(record), default=_encode_fallback).decode("utf-8")

    def build_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), self.MAX_MESSAGE_LEN),
        }
        # booksearch.book.builder -> builder
        _, _, component = record.name.rpartition(".")
        if component and component != record.name:
            entry["component"] = component
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            entry[key] = self._scrub(key, value)
        return entry

    def _scrub(self, key: str, value: Any) -> Any:
        if key.lower() in self.REDACT_KEYS:
            return REDACTED
        if isinstance(value, str):
            return _clip(value, _MAX_EXTRA_STR_LEN)
        return value


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Install a single root handler, replacing whatever was configured before.

    Args:
        level: Root log level name (``debug`` .. ``critical``, any case)
        json_output: Emit one JSON object per line instead of plain text
        logger_levels: Per-logger overrides, logger name -> level name
        stream: Destination stream, stderr when omitted

    Raises:
        ValueError: If ``level`` or an override names an unknown level
    """
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for logger_name, logger_level in (logger_levels or {}).items():
        logging.getLogger(logger_name).setLevel(_resolve_level(logger_level))
