"""
Structured Exception Hierarchy

Provides the exceptions raised by the emulator tooling, each carrying an error
code and contextual information for diagnostics.
"""

from typing import Dict, List, Any, Optional
from datetime import datetime, timezone


class EmulatorError(Exception):
    """
    Base exception class for all emulator tooling errors.

    Provides structured error information including an error code,
    context data and the underlying cause.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "EMULATOR_ERROR",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(EmulatorError):
    """Raised when configuration-related errors occur."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        validation_errors: Optional[List[str]] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if config_path:
            context['config_path'] = config_path
        if validation_errors:
            context['validation_errors'] = validation_errors

        super().__init__(
            message=message,
            error_code="CONFIG_ERROR",
            context=context,
            **kwargs
        )


class PluginError(EmulatorError):
    """Raised when a plugin folder cannot be resolved to a module."""

    def __init__(
        self,
        message: str,
        plugin_folder: Optional[str] = None,
        descriptor_path: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if plugin_folder:
            context['plugin_folder'] = plugin_folder
        if descriptor_path:
            context['descriptor_path'] = descriptor_path

        super().__init__(
            message=message,
            error_code="PLUGIN_ERROR",
            context=context,
            **kwargs
        )


class AuthenticationError(EmulatorError):
    """Raised when talking to Cloud Director fails for reasons other than an unauthorized session."""

    def __init__(
        self,
        message: str,
        alias: Optional[str] = None,
        host: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if alias:
            context['alias'] = alias
        if host:
            context['host'] = host

        super().__init__(
            message=message,
            error_code="AUTH_ERROR",
            context=context,
            **kwargs
        )
