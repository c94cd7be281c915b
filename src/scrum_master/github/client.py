"""GitHub API client with authentication, rate limit tracking and retries."""

import asyncio
import base64
import binascii
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urljoin

import aiohttp

from .auth import AuthProvider
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
from .rate_limiting import RateLimitTracker

logger = logging.getLogger(__name__)

# Errors worth another attempt; everything else is raised immediately.
RETRYABLE_ERRORS = (GitHubServerError, GitHubConnectionError, GitHubTimeoutError)


@dataclass
class GitHubClientConfig:
    """Configuration for GitHub client."""

    base_url: str = "https://api.github.com"
    timeout: int = 30
    max_retries: int = 3
    retry_backoff_factor: float = 2.0
    rate_limit_buffer: int = 0
    user_agent: str = "Scrum-Master-Bot/1.0"


class GitHubClient:
    """Async GitHub REST/GraphQL client."""

    def __init__(
        self,
        auth: AuthProvider,
        config: GitHubClientConfig | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            auth: Authentication provider
            config: Client configuration
        """
        self.auth = auth
        self.config = config or GitHubClientConfig()
        self.rate_limiter = RateLimitTracker(buffer=self.config.rate_limit_buffer)

        # HTTP session will be initialized on first use
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def __aenter__(self) -> "GitHubClient":
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure HTTP session is initialized."""
        if self._session is None or self._session.closed:
            async with self._session_lock:
                if self._session is None or self._session.closed:
                    self._session = aiohttp.ClientSession(
                        timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                        headers={
                            "User-Agent": self.config.user_agent,
                            "Accept": "application/vnd.github+json",
                        },
                    )

    async def close(self) -> None:
        """Close HTTP session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _url(self, path: str) -> str:
        return urljoin(self.config.base_url.rstrip("/") + "/", path.lstrip("/"))

    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        retry: bool = True,
    ) -> aiohttp.ClientResponse:
        """Make HTTP request with retry logic and error handling.

        The response body is read before the connection is released so
        callers can decode it afterwards.

        Args:
            method: HTTP method
            url: Request URL
            params: Query parameters
            data: JSON request body
            headers: Additional headers
            retry: Whether transient failures get another attempt

        Returns:
            HTTP response with its body loaded

        Raises:
            GitHubError: Various GitHub API errors
        """
        correlation_id = str(uuid.uuid4())[:8]

        self.rate_limiter.check()

        request_headers = dict(headers or {})
        auth_token = await self.auth.get_token()
        request_headers.update(auth_token.to_header())

        await self._ensure_session()
        if not self._session:
            raise GitHubConnectionError("Failed to initialize HTTP session")

        request_kwargs: dict[str, Any] = {"params": params, "headers": request_headers}
        if data is not None:
            request_kwargs["json"] = data

        max_retries = self.config.max_retries if retry else 0
        last_exception: GitHubError | None = None
        for attempt in range(max_retries + 1):
            try:
                start_time = time.monotonic()
                logger.debug(
                    f"GitHub API request [{correlation_id}] {method} {url} "
                    f"(attempt {attempt + 1})"
                )

                async with self._session.request(
                    method, url, **request_kwargs
                ) as response:
                    await response.read()
                    self.rate_limiter.update(response.headers)

                    logger.debug(
                        f"GitHub API response [{correlation_id}] {response.status} "
                        f"in {time.monotonic() - start_time:.2f}s"
                    )

                    if 200 <= response.status < 300:
                        return response
                    await self._handle_error_response(response, correlation_id)

            except RETRYABLE_ERRORS as e:
                last_exception = e
            except TimeoutError:
                last_exception = GitHubTimeoutError(f"Request timeout for {method} {url}")
            except aiohttp.ClientError as e:
                last_exception = GitHubConnectionError(
                    f"Connection error for {method} {url}: {e}"
                )

            if attempt < max_retries:
                backoff_time = self.config.retry_backoff_factor**attempt
                logger.warning(
                    f"Request [{correlation_id}] failed (attempt {attempt + 1}), "
                    f"retrying in {backoff_time:.1f}s: {last_exception}"
                )
                await asyncio.sleep(backoff_time)

        if last_exception:
            raise last_exception
        raise GitHubError(f"Request failed after {max_retries} retries")

    async def _handle_error_response(
        self, response: aiohttp.ClientResponse, correlation_id: str
    ) -> None:
        """Translate an error response into the matching exception.

        Raises:
            GitHubError: Appropriate error based on status code
        """
        try:
            error_data = await response.json(content_type=None)
        except (json.JSONDecodeError, aiohttp.ContentTypeError, ValueError):
            error_data = None
        if not isinstance(error_data, dict):
            error_data = {"message": await response.text()}

        error_message = error_data.get("message") or f"HTTP {response.status}"

        logger.warning(
            f"GitHub API error [{correlation_id}] {response.status}: {error_message}"
        )

        status = response.status
        if status == 401:
            raise GitHubAuthenticationError(error_message, status, error_data)
        if status in (403, 429):
            if status == 429 or "rate limit" in error_message.lower():
                reset_time = response.headers.get("X-RateLimit-Reset")
                raise GitHubRateLimitError(
                    error_message,
                    reset_time=int(reset_time) if reset_time else None,
                    remaining=int(response.headers.get("X-RateLimit-Remaining", "0")),
                    limit=int(response.headers.get("X-RateLimit-Limit", "0")),
                )
            raise GitHubPermissionError(error_message, status, error_data)
        if status == 404:
            raise GitHubNotFoundError(error_message, status, error_data)
        if status == 422:
            raise GitHubValidationError(error_message, status, error_data)
        if 500 <= status < 600:
            raise GitHubServerError(error_message, status, error_data)
        raise GitHubError(error_message, status, error_data)

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make GET request to GitHub API.

        Args:
            path: API path (e.g., '/repos/owner/repo')
            params: Query parameters
            headers: Additional headers

        Returns:
            Decoded JSON response
        """
        response = await self._make_request(
            "GET", self._url(path), params, headers=headers
        )
        return await response.json(content_type=None)

    async def post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        retry: bool = True,
    ) -> Any:
        """Make POST request to GitHub API.

        Args:
            path: API path
            data: Request body data
            params: Query parameters
            headers: Additional headers
            retry: Whether 5xx and connection failures are retried

        Returns:
            Decoded JSON response
        """
        response = await self._make_request(
            "POST", self._url(path), params, data, headers, retry=retry
        )
        if response.status == 204:
            return None
        return await response.json(content_type=None)

    async def graphql(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a GraphQL query or mutation.

        Returns:
            The ``data`` member of the response

        Raises:
            GitHubNotFoundError: If GitHub reports a NOT_FOUND error
            GitHubPermissionError: If GitHub reports a FORBIDDEN error
            GitHubGraphQLError: For any other reported error
        """
        payload = await self.post(
            "/graphql", data={"query": query, "variables": variables or {}}
        )
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            message = "; ".join(str(err.get("message", err)) for err in errors)
            error = GitHubGraphQLError(message, errors)
            if "NOT_FOUND" in error.error_types:
                raise GitHubNotFoundError(message, 404, {"errors": errors}) from error
            if "FORBIDDEN" in error.error_types:
                raise GitHubPermissionError(message, 403, {"errors": errors}) from error
            raise error
        return payload.get("data") or {}

    # Convenience methods for the endpoints the workflow needs

    async def get_repo(self, owner: str, repo: str) -> dict[str, Any]:
        """Get repository information."""
        return await self.get(f"/repos/{owner}/{repo}")

    async def list_contents(
        self, owner: str, repo: str, path: str = ""
    ) -> list[dict[str, Any]]:
        """List directory entries; a file path yields a single-entry list."""
        result = await self.get(f"/repos/{owner}/{repo}/contents/{quote(path)}")
        if isinstance(result, list):
            return result
        return [result]

    async def list_languages(self, owner: str, repo: str) -> dict[str, int]:
        """Get the language byte breakdown for a repository."""
        return await self.get(f"/repos/{owner}/{repo}/languages")

    async def get_file_text(self, owner: str, repo: str, path: str) -> str | None:
        """Fetch and decode a file through the contents API.

        Returns:
            File text, or None when the file does not exist
        """
        try:
            entry = await self.get(f"/repos/{owner}/{repo}/contents/{quote(path)}")
        except GitHubNotFoundError:
            return None
        if not isinstance(entry, dict) or entry.get("type") != "file":
            return None
        try:
            return base64.b64decode(entry.get("content", "")).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.warning(f"Could not decode {owner}/{repo}/{path}")
            return None

    async def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: list[str] | None = None,
        assignees: list[str] | None = None,
    ) -> dict[str, Any]:
        """Create an issue.

        Sent once; transient failures are raised to the caller.
        """
        data: dict[str, Any] = {"title": title, "body": body}
        if labels:
            data["labels"] = labels
        if assignees:
            data["assignees"] = assignees
        return await self.post(f"/repos/{owner}/{repo}/issues", data=data, retry=False)

    async def create_label(
        self,
        owner: str,
        repo: str,
        name: str,
        color: str,
        description: str = "",
    ) -> dict[str, Any]:
        """Create a label."""
        return await self.post(
            f"/repos/{owner}/{repo}/labels",
            data={"name": name, "color": color, "description": description},
        )

    async def add_labels_to_issue(
        self, owner: str, repo: str, issue_number: int, labels: list[str]
    ) -> list[dict[str, Any]]:
        """Attach labels to an existing issue."""
        return await self.post(
            f"/repos/{owner}/{repo}/issues/{issue_number}/labels",
            data={"labels": labels},
        )
