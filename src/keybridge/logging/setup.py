"""Structured logging configuration for keybridge.

Provides JSON and text formatters, a command-context filter that
stamps the running command and enrollment ID onto every log record,
and a one-call ``configure_logging`` function driven by config settings.

All output goes to **stderr** (and optionally a file): stdout is the
response channel and carries exactly one JSON object.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from keybridge.config.settings import LoggingSettings

# Attributes that are part of the standard LogRecord -- everything
# else is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
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
        # Our own well-known context attributes (handled explicitly):
        "command",
        "enrollment_id",
    }
)

_current_command: ContextVar[str] = ContextVar("keybridge_command", default="-")
_current_enrollment: ContextVar[str] = ContextVar("keybridge_enrollment", default="-")


def bind_command_context(command: str, enrollment_id: str | None = None) -> None:
    """Record the command being served for :class:`CommandContextFilter`."""
    _current_command.set(command)
    _current_enrollment.set(enrollment_id or "-")


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the
    caller or injected by filters.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        command = getattr(record, "command", None)
        if command is not None:
            data["command"] = command

        enrollment_id = getattr(record, "enrollment_id", None)
        if enrollment_id is not None:
            data["enrollment_id"] = enrollment_id

        # Caller-supplied extra fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(command)s %(enrollment_id)s] %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class CommandContextFilter(logging.Filter):
    """Inject the current command context into every log record.

    Adds ``command`` and ``enrollment_id`` as bound by
    :func:`bind_command_context`, falling back to ``"-"``.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "command"):
            record.command = _current_command.get()  # type: ignore[attr-defined]
        if not hasattr(record, "enrollment_id"):
            record.enrollment_id = _current_enrollment.get()  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``keybridge`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output on
    stderr, plus a rotating file handler when ``settings.file`` is set.

    Returns the root ``keybridge`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.WARNING)

    root = logging.getLogger("keybridge")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    ctx_filter = CommandContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    if settings.file:
        try:
            from logging.handlers import RotatingFileHandler

            fh = RotatingFileHandler(
                settings.file,
                maxBytes=settings.max_file_size_bytes,
                backupCount=settings.backup_count,
            )
            # File logs are always structured JSON
            fh.setFormatter(StructuredFormatter())
            fh.addFilter(ctx_filter)
            root.addHandler(fh)
        except OSError as exc:
            root.warning(
                "Could not open log file %s: %s",
                settings.file,
                exc,
            )

    return root
