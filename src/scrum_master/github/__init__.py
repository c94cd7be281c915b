"""GitHub API client package."""

from .auth import AuthProvider, AuthToken, GitHubAppAuth, PersonalAccessTokenAuth
from .client import GitHubClient, GitHubClientConfig
from .exceptions import (
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
)
from .rate_limiting import RateLimitInfo, RateLimitTracker
from .repository_loader import RepositoryLoader, parse_repository_url

__all__ = [
    "AuthProvider",
    "AuthToken",
    "GitHubAppAuth",
    "GitHubAuthenticationError",
    "GitHubClient",
    "GitHubClientConfig",
    "GitHubConnectionError",
    "GitHubError",
    "GitHubGraphQLError",
    "GitHubNotFoundError",
    "GitHubPermissionError",
    "GitHubRateLimitError",
    "GitHubServerError",
    "GitHubTimeoutError",
    "GitHubValidationError",
    "PersonalAccessTokenAuth",
    "RateLimitInfo",
    "RateLimitTracker",
    "RepositoryLoader",
    "parse_repository_url",
]
