"""Workflow-level exceptions.

GitHub transport errors live in ``scrum_master.github.exceptions`` and
configuration errors in ``scrum_master.config.exceptions``.
"""

from typing import Any


class ScrumMasterError(Exception):
    """Base exception for workflow errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize workflow error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.details = details or {}


class InvalidRepositoryUrlError(ScrumMasterError):
    """Raised when a string is not a GitHub repository URL."""

    def __init__(self, url: str):
        super().__init__("Invalid GitHub repository URL", {"url": url})
        self.url = url


class AnalysisNotSupportedError(ScrumMasterError):
    """Raised by analysis strategies that are not implemented yet."""


class WorkflowStepError(ScrumMasterError):
    """Raised when a pipeline step cannot produce its output."""

    def __init__(self, step: str, reason: str | None):
        super().__init__(f"Failed to {step}: {reason}", {"step": step})
        self.step = step
        self.reason = reason


class NotificationDeliveryError(ScrumMasterError):
    """Raised inside a sink when an endpoint rejects a notification."""
