"""Command abstraction for GitHub operations.

Every command returns a ``CommandResult``; GitHub API failures are turned
into failure results whose error text starts with a phrase the invoker can
use to decide whether a batch must stop.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..github.exceptions import (
    GitHubAuthenticationError,
    GitHubError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
)

logger = logging.getLogger(__name__)

# Failures whose error text contains one of these stop a batch.
CRITICAL_ERROR_PHRASES = (
    "rate limit exceeded",
    "authentication failed",
    "insufficient permissions",
    "project not found",
)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of executing or undoing a command."""

    success: bool
    data: Any = None
    error: str | None = None
    executed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None, **metadata: Any) -> "CommandResult":
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, data: Any = None, **metadata: Any) -> "CommandResult":
        return cls(success=False, data=data, error=error, metadata=metadata)

    @property
    def is_critical(self) -> bool:
        """Whether this is a failure that should halt a batch."""
        if self.success or not self.error:
            return False
        text = self.error.lower()
        return any(phrase in text for phrase in CRITICAL_ERROR_PHRASES)


def describe_github_error(error: GitHubError) -> str:
    """Error text for a failed command, prefixed with its critical phrase."""
    if isinstance(error, GitHubRateLimitError):
        return f"rate limit exceeded: {error.message}"
    if isinstance(error, GitHubAuthenticationError):
        return f"authentication failed: {error.message}"
    if isinstance(error, GitHubPermissionError):
        return f"insufficient permissions: {error.message}"
    if isinstance(error, GitHubNotFoundError):
        return f"project not found: {error.message}"
    return error.message


class GitHubCommand(ABC):
    """A single unit of GitHub work.

    Subclasses implement ``_run`` and the descriptive methods. ``execute``
    wraps ``_run`` so GitHub errors become failure results. Commands are not
    reversible unless a subclass overrides both ``can_undo`` and ``undo``.
    """

    operation = "Operation"

    async def execute(self) -> CommandResult:
        """Run the command, converting GitHub API errors into failures."""
        try:
            data = await self._run()
        except GitHubError as e:
            logger.warning(f"{self.get_description()} failed: {e}")
            return CommandResult.fail(
                describe_github_error(e), data=self.partial_data(), type=self.get_type()
            )
        return CommandResult.ok(data, type=self.get_type())

    @abstractmethod
    async def _run(self) -> Any:
        """Perform the API calls and return the result payload."""

    def partial_data(self) -> Any:
        """Payload for work already done when ``_run`` fails part way."""
        return None

    async def undo(self) -> CommandResult:
        return CommandResult.fail(f"{self.operation} cannot be undone")

    def can_undo(self) -> bool:
        return False

    @abstractmethod
    def get_description(self) -> str:
        """One-line description used in logs and progress ticks."""

    @abstractmethod
    def get_type(self) -> str:
        """Stable machine-readable command type."""

    def get_metadata(self) -> dict[str, Any]:
        return {}
