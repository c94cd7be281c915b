"""Configuration-related exceptions."""

from typing import Any


class ConfigurationError(Exception):
    """Base exception for configuration errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize configuration error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.details = details or {}


class ConfigurationFileError(ConfigurationError):
    """Raised when a configuration file cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.file_path = file_path


class ConfigurationValidationError(ConfigurationError):
    """Raised when configuration values fail validation."""

    def __init__(
        self,
        message: str,
        validation_errors: list[Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.validation_errors = validation_errors or []


class ConfigurationMissingError(ConfigurationError):
    """Raised when a required setting, such as the GitHub token, is absent."""

    def __init__(
        self,
        message: str,
        missing_fields: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.missing_fields = missing_fields or []
