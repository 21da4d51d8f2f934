"""
Observability - structured logging with refresh-cycle correlation
"""

from .logging import (
    LogLevel,
    JSONLogFormatter,
    HumanReadableFormatter,
    get_logger,
    configure_default_logging,
    refresh_context,
    source_context,
    get_refresh_id,
)

__all__ = [
    "LogLevel",
    "JSONLogFormatter",
    "HumanReadableFormatter",
    "get_logger",
    "configure_default_logging",
    "refresh_context",
    "source_context",
    "get_refresh_id",
]
