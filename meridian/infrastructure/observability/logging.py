"""
Structured Logging for meridian

Provides JSON and human-readable formatters for the standard ``logging``
module, with a refresh-cycle correlation ID carried in a context variable so
that every record emitted during one refresh cycle can be tied together.
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, TextIO, Union

ROOT_LOGGER_NAME = "meridian"

# Context variables for correlation tracking
refresh_id_var: ContextVar[Optional[str]] = ContextVar('refresh_id', default=None)
source_var: ContextVar[Optional[str]] = ContextVar('source', default=None)

_RESERVED_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class LogLevel(Enum):
    """Log levels accepted by configure_default_logging"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: v for k, v in record.__dict__.items()
        if k not in _RESERVED_RECORD_ATTRS and not k.startswith('_')
    }


class JSONLogFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'refresh_id': refresh_id_var.get(),
            'source': source_var.get(),
        }

        extra = _extra_fields(record)
        if extra:
            entry['extra'] = extra

        if record.exc_info and record.exc_info[1] is not None:
            entry['exception'] = self.formatException(record.exc_info)

        # Remove None values to keep logs clean
        entry = {k: v for k, v in entry.items() if v is not None}
        return json.dumps(entry, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for development/debugging"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base_msg = f"[{timestamp}] {record.levelname}: {record.name}: {record.getMessage()}"

        refresh_id = refresh_id_var.get()
        if refresh_id:
            base_msg += f" [refresh_id={refresh_id}]"

        extra = _extra_fields(record)
        if extra:
            extra_str = ', '.join(f"{k}={v}" for k, v in extra.items())
            base_msg += f" [{extra_str}]"

        if record.exc_info and record.exc_info[1] is not None:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the meridian root logger"""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_default_logging(
    level: Union[LogLevel, str] = LogLevel.INFO,
    use_json: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    stream: TextIO = sys.stderr
) -> logging.Logger:
    """
    Configure default logging for meridian.

    Replaces handlers previously installed by this function, so calling it
    again reconfigures instead of duplicating output.
    """
    level_name = level.value if isinstance(level, LogLevel) else str(level).upper()

    # Choose formatter
    formatter = JSONLogFormatter() if use_json else HumanReadableFormatter()

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level_name)

    for handler in list(root_logger.handlers):
        if getattr(handler, '_meridian_default', False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(formatter)
    console_handler._meridian_default = True
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler._meridian_default = True
        root_logger.addHandler(file_handler)

    return root_logger


@contextmanager
def refresh_context(refresh_id: Optional[str] = None) -> Iterator[str]:
    """Context manager tagging log records with a refresh-cycle ID"""
    if refresh_id is None:
        refresh_id = str(uuid.uuid4())

    token = refresh_id_var.set(refresh_id)
    try:
        yield refresh_id
    finally:
        refresh_id_var.reset(token)


@contextmanager
def source_context(source: str) -> Iterator[str]:
    """Context manager tagging log records with the source being processed"""
    token = source_var.set(source)
    try:
        yield source
    finally:
        source_var.reset(token)


def get_refresh_id() -> Optional[str]:
    """Get the current refresh ID from context"""
    return refresh_id_var.get()
