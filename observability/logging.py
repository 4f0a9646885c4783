from __future__ import annotations
import logging
import sys
import json
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from pathlib import Path

CONTEXT_PREFIX = "ctx_"

# Loggers that are chatty at INFO and drown out per-document lines
NOISY_LOGGERS = ("urllib3", "sqlalchemy.engine", "sqlalchemy.pool")

# Error attributes worth surfacing next to a failed document
ERROR_FIELDS = ("url", "table", "key", "purpose", "status_code")

_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


def _split_extras(record: logging.LogRecord):
    context, extra = {}, {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS:
            continue
        if key.startswith(CONTEXT_PREFIX):
            context[key[len(CONTEXT_PREFIX):]] = value
        else:
            extra[key] = value
    return context, extra


class JSONFormatter(logging.Formatter):
    """One JSON object per line; structured context goes under ``context``."""

    def __init__(self, service_name: str = "webindex"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        context, extra = _split_extras(record)
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
                                 .isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        entry.update(extra)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Single-line console output with ``key=value`` context."""

    COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        level = record.levelname
        if self.use_colors and record.levelno in self.COLORS:
            level = f"{self.COLORS[record.levelno]}{level:8}{self.RESET}"
        else:
            level = f"{level:8}"

        line = f"{timestamp} {level} {record.name}: {record.getMessage()}"

        context, _ = _split_extras(record)
        if context:
            line += "  " + " ".join(f"{k}={v}" for k, v in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    service_name: str = "webindex",
    log_file: Optional[str] = None,
    use_json: bool = False,
    use_colors: bool = True
) -> None:
    """Configure the root logger for a run.

    Console output goes to stderr so that command output on stdout stays
    clean. A log file, when given, always receives JSON lines.

    Args:
        level: Log level name
        service_name: Value of the ``service`` field in JSON lines
        log_file: Optional path of a JSON log file
        use_json: Emit JSON on the console as well
        use_colors: Colorize console levels (ignored for JSON)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        JSONFormatter(service_name) if use_json else ColoredFormatter(use_colors)
    )
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter(service_name))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def error_fields(error: BaseException) -> Dict[str, Any]:
    """Context fields for a failed document: error type plus whichever of
    url, table, key, purpose and status_code the error carries."""
    fields: Dict[str, Any] = {"error_type": type(error).__name__}
    for name in ERROR_FIELDS:
        value = getattr(error, name, None)
        if value is not None:
            fields[name] = value
    return fields


class StructuredLogger:
    """Logger wrapper that attaches ``ctx_``-prefixed context to every record."""

    def __init__(self, name: str, **default_context):
        self.logger = logging.getLogger(name)
        self.default_context = default_context

    def bind(self, **context) -> 'StructuredLogger':
        """Return a logger that adds ``context`` to everything it logs."""
        return StructuredLogger(self.logger.name, **{**self.default_context, **context})

    def _log(self, level: int, message: str, **context) -> None:
        full_context = {**self.default_context, **context}
        extra = {f"{CONTEXT_PREFIX}{k}": v for k, v in full_context.items()}
        self.logger.log(level, message, extra=extra)

    def debug(self, message: str, **context) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context) -> None:
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, **context) -> None:
        self._log(logging.ERROR, message, **context)


def get_structured_logger(name: str, **default_context) -> StructuredLogger:
    return StructuredLogger(name, **default_context)
