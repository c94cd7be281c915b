"""GitHub API client exceptions."""

from typing import Any


class GitHubError(Exception):
    """Base exception for GitHub API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        """Initialize GitHub error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from GitHub API
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}


class GitHubAuthenticationError(GitHubError):
    """Raised when the token is rejected (401)."""


class GitHubPermissionError(GitHubError):
    """Raised when the token lacks the scopes for a request (403)."""


class GitHubRateLimitError(GitHubError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        reset_time: int | None = None,
        remaining: int = 0,
        limit: int = 0,
    ):
        """Initialize rate limit error.

        Args:
            message: Error message
            reset_time: Unix timestamp when rate limit resets
            remaining: Remaining API calls
            limit: Total rate limit
        """
        super().__init__(message, status_code=403)
        self.reset_time = reset_time
        self.remaining = remaining
        self.limit = limit


class GitHubNotFoundError(GitHubError):
    """Raised when resource is not found."""


class GitHubValidationError(GitHubError):
    """Raised when request validation fails (422)."""

    @property
    def already_exists(self) -> bool:
        """Whether GitHub rejected the request because the resource exists."""
        errors = self.response_data.get("errors") or []
        return any(
            isinstance(err, dict) and err.get("code") == "already_exists"
            for err in errors
        )


class GitHubServerError(GitHubError):
    """Raised when GitHub server returns 5xx error."""


class GitHubConnectionError(GitHubError):
    """Raised when connection to GitHub fails."""


class GitHubTimeoutError(GitHubError):
    """Raised when request times out."""


class GitHubGraphQLError(GitHubError):
    """Raised when a GraphQL response carries an ``errors`` array."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        """Initialize GraphQL error.

        Args:
            message: Joined error messages
            errors: Raw GraphQL error objects
        """
        super().__init__(message, status_code=200, response_data={"errors": errors})
        self.errors = errors or []

    @property
    def error_types(self) -> set[str]:
        """Distinct GraphQL error ``type`` values."""
        return {err.get("type", "") for err in self.errors if isinstance(err, dict)}
