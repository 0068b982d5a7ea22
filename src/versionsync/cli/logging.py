"""
Logging - Text and JSON log output for the versionsync CLI.

Library modules log through ``logging.getLogger("<Component>")``; this
module only decides how those records are rendered. JSON output is one
object per line, for CI systems that ingest structured logs.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, TextIO


# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

NOISY_LOGGERS = ("urllib3", "requests", "asyncio")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS and not k.startswith("_")}


class JSONFormatter(logging.Formatter):
    """
    Render log records as single-line JSON objects.

    Fields: ``timestamp`` (ISO-8601 UTC, millisecond precision), ``level``,
    ``logger``, ``message``, plus ``context`` for ``extra`` values,
    ``exception`` when exc_info is set and ``location`` on request.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_location: bool = False,
        static_fields: dict[str, Any] | None = None,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_location = include_location
        self.static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {}

        if self.include_timestamp:
            stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
            data["timestamp"] = stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z"
        if self.include_level:
            data["level"] = record.levelname
        if self.include_logger:
            data["logger"] = record.name

        data["message"] = record.getMessage()
        data.update(self.static_fields)

        context = _extra_fields(record)
        if context:
            data["context"] = context

        if self.include_location:
            data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            data["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
            }

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable log lines, optionally coloured by level."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[36m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, include_context: bool = False):
        super().__init__(fmt="%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%H:%M:%S")
        self.use_colors = use_colors
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        if self.include_context:
            context = _extra_fields(record)
            if context:
                line += " " + " ".join(f"{k}={v!r}" for k, v in sorted(context.items()))

        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelno)
            if color:
                line = f"{color}{line}{self.RESET}"
        return line


class ContextLogger:
    """
    Logger wrapper that attaches bound context to every record.

    Example:
        >>> log = get_logger("Resolve", project="my_app")
        >>> log.bind(store="app_store").info("Looking up builds")
    """

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        self._logger = logging.getLogger(name)
        self._context = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> ContextLogger:
        """Return a new logger with extra context merged in."""
        return ContextLogger(self._logger.name, {**self._context, **context})

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        extra = {**self._context, **kwargs.pop("extra", {})}
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)


def get_logger(name: str, **context: Any) -> ContextLogger:
    """Get a ContextLogger with optional bound context."""
    return ContextLogger(name, context)


def setup_logging(
    level: int = logging.INFO,
    log_format: str = "text",
    log_file: str | None = None,
    static_fields: dict[str, Any] | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure the root logger.

    Replaces any existing root handlers with one console handler on stderr
    and, when ``log_file`` is given, a file handler without colours.

    Args:
        level: Root log level.
        log_format: "text" or "json".
        log_file: Optional path to also write logs to.
        static_fields: Fields added to every JSON record.
        stream: Console stream (default: stderr).
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    console_stream = stream or sys.stderr

    def make_formatter(colors: bool) -> logging.Formatter:
        if log_format == "json":
            return JSONFormatter(static_fields=static_fields)
        return TextFormatter(use_colors=colors, include_context=level <= logging.DEBUG)

    console = logging.StreamHandler(console_stream)
    console.setFormatter(make_formatter(colors=hasattr(console_stream, "isatty") and console_stream.isatty()))
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(make_formatter(colors=False))
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
