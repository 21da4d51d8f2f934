"""
Structured Exception Hierarchy

Provides the exception hierarchy used across meridian, carrying error codes,
contextual information and the underlying cause for diagnostics.
"""

from typing import Dict, List, Any, Optional
import uuid
from datetime import datetime, timezone


class MeridianException(Exception):
    """
    Base exception class for all meridian-specific exceptions.

    Provides structured error information including error codes,
    context data, and correlation IDs for tracing.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(MeridianException):
    """Raised when meridian's own settings are unusable."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        validation_errors: Optional[List[Any]] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if config_path:
            context['config_path'] = config_path
        if validation_errors:
            context['validation_errors'] = validation_errors
        error_code = kwargs.pop('error_code', "CONFIG_ERROR")

        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            **kwargs
        )


class ConfigurationValidationError(ConfigurationError):
    """Raised when settings fail model validation."""

    def __init__(self, message: str, validation_errors: List[Dict[str, Any]], **kwargs):
        super().__init__(
            message,
            validation_errors=validation_errors,
            error_code="CONFIGURATION_VALIDATION_ERROR",
            **kwargs
        )
        self.validation_errors = validation_errors

    def get_detailed_message(self) -> str:
        """Get a detailed error message with all validation errors."""
        lines = [self.message]
        lines.append("Validation errors:")

        for error in self.validation_errors:
            location = " -> ".join(str(loc) for loc in error.get('loc', []))
            msg = error.get('msg', 'Unknown error')
            lines.append(f"- {location}: {msg}")

        return "\n".join(lines)


class DocumentParseError(ConfigurationError):
    """Raised when raw content cannot be parsed into a document."""

    def __init__(self, message: str, origin: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if origin:
            context['origin'] = origin
        super().__init__(
            message,
            error_code="DOCUMENT_PARSE_ERROR",
            context=context,
            **kwargs
        )
        self.origin = origin


class TransientFetchError(MeridianException):
    """Raised when a backing store or connector call fails."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        store: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if target:
            context['target'] = target
        if store:
            context['store'] = store

        super().__init__(
            message=message,
            error_code="TRANSIENT_FETCH_ERROR",
            context=context,
            **kwargs
        )


class MissingTargetError(MeridianException):
    """Raised when a requested target or reference name does not exist."""

    def __init__(
        self,
        message: str,
        targets: Optional[List[str]] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if targets:
            context['targets'] = list(targets)

        super().__init__(
            message=message,
            error_code="MISSING_TARGET",
            context=context,
            **kwargs
        )
        self.targets = list(targets or [])


class InvalidReferenceError(MeridianException):
    """Raised for malformed logical paths, cache keys or value references."""

    def __init__(
        self,
        message: str,
        reference: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if reference is not None:
            context['reference'] = reference

        super().__init__(
            message=message,
            error_code="INVALID_REFERENCE",
            context=context,
            **kwargs
        )


class ConnectorError(MeridianException):
    """Raised when connector registration or lookup fails."""

    def __init__(
        self,
        message: str,
        connector_type: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if connector_type:
            context['connector_type'] = connector_type

        super().__init__(
            message=message,
            error_code="CONNECTOR_ERROR",
            context=context,
            **kwargs
        )


class ReloadableClosedError(MeridianException, RuntimeError):
    """Raised on any use of a reloadable after it has been closed."""

    def __init__(self, message: str = "Reloadable is closed", **kwargs):
        super().__init__(
            message=message,
            error_code="RELOADABLE_CLOSED",
            **kwargs
        )


class ValueNotPresentError(MeridianException, LookupError):
    """Raised when reading the value of an empty reloadable."""

    def __init__(self, message: str = "No value present", path: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if path:
            context['path'] = path
        super().__init__(
            message=message,
            error_code="VALUE_NOT_PRESENT",
            context=context,
            **kwargs
        )
