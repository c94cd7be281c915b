"""GitHub authentication handlers.

Two providers are supported: a personal access token, and a GitHub App
installation. The App provider signs a short-lived JWT with the app's
private key and trades it for an installation access token, which is what
the REST and GraphQL endpoints accept.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

import aiohttp
import jwt

from .exceptions import GitHubAuthenticationError, GitHubConnectionError

logger = logging.getLogger(__name__)

# Installation tokens are refreshed this many seconds before GitHub expires them.
TOKEN_EXPIRY_MARGIN = 60


@dataclass
class AuthToken:
    """Credential sent with every request."""

    token: str
    token_type: str = "Bearer"
    expires_at: int | None = None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at

    def to_header(self) -> dict[str, str]:
        """Convert to authorization header."""
        return {"Authorization": f"{self.token_type} {self.token}"}


class AuthProvider(ABC):
    """Source of the credential the client attaches to requests."""

    @abstractmethod
    async def get_token(self) -> AuthToken:
        """Current token, refreshed when it has expired."""

    @abstractmethod
    async def refresh_token(self) -> AuthToken:
        """Obtain a fresh token."""


class PersonalAccessTokenAuth(AuthProvider):
    """Personal Access Token authentication provider."""

    def __init__(self, token: str):
        """Initialize PAT authentication.

        Args:
            token: GitHub Personal Access Token
        """
        if not token:
            raise GitHubAuthenticationError("Personal Access Token is required")
        self._token = AuthToken(token=token, token_type="token")  # nosec B106

    async def get_token(self) -> AuthToken:
        return self._token

    async def refresh_token(self) -> AuthToken:
        """PAT tokens don't need refresh."""
        return self._token


class GitHubAppAuth(AuthProvider):
    """GitHub App installation authentication."""

    def __init__(
        self,
        app_id: str,
        private_key: str,
        installation_id: str,
        api_url: str = "https://api.github.com",
        timeout: int = 30,
    ):
        """Initialize GitHub App authentication.

        Args:
            app_id: GitHub App ID, used as the JWT issuer
            private_key: PEM private key used for RS256 signing
            installation_id: Installation whose access token is requested
            api_url: REST base URL hosting the access token endpoint
            timeout: Seconds allowed for the token exchange
        """
        if not app_id or not private_key or not installation_id:
            raise GitHubAuthenticationError(
                "GitHub App authentication requires app id, private key "
                "and installation id"
            )
        self.app_id = app_id
        self.private_key = private_key
        self.installation_id = installation_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._current_token: AuthToken | None = None

    def generate_jwt(self) -> str:
        """App JWT valid for ten minutes, backdated for clock drift."""
        now = int(time.time())
        payload = {"iat": now - 60, "exp": now + 600, "iss": self.app_id}
        try:
            token = jwt.encode(payload, self.private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise GitHubAuthenticationError(f"Failed to generate JWT: {e}") from e
        return token if isinstance(token, str) else token.decode("utf-8")

    async def get_token(self) -> AuthToken:
        """Cached installation token, or a new one once it has expired."""
        if self._current_token and not self._current_token.is_expired:
            return self._current_token
        return await self.refresh_token()

    async def refresh_token(self) -> AuthToken:
        """Exchange a fresh JWT for an installation access token.

        Raises:
            GitHubAuthenticationError: If GitHub rejects the exchange
            GitHubConnectionError: If GitHub cannot be reached
        """
        url = f"{self.api_url}/app/installations/{self.installation_id}/access_tokens"
        headers = {
            "Authorization": f"Bearer {self.generate_jwt()}",
            "Accept": "application/vnd.github+json",
        }
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.post(url, headers=headers) as response:
                    body = await response.json(content_type=None)
                    if response.status != 201:
                        message = (
                            body.get("message") if isinstance(body, dict) else None
                        ) or f"HTTP {response.status}"
                        raise GitHubAuthenticationError(
                            f"Installation token exchange failed: {message}",
                            response.status,
                        )
        except (aiohttp.ClientError, TimeoutError) as e:
            raise GitHubConnectionError(
                f"Could not reach {url} for an installation token: {e}"
            ) from e

        expires_at = datetime.fromisoformat(body["expires_at"].replace("Z", "+00:00"))
        self._current_token = AuthToken(
            token=body["token"],
            token_type="token",  # nosec B106
            expires_at=int(expires_at.timestamp()) - TOKEN_EXPIRY_MARGIN,
        )
        logger.info(
            f"Obtained installation token for app {self.app_id} "
            f"(installation {self.installation_id})"
        )
        return self._current_token
