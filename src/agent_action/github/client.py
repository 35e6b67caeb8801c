"""GitHub API client for the prepare step.

This module provides an async wrapper around the GitHub REST API for:
- Checking collaborator permissions and account types
- Reading issues, pull requests, comments, reviews and changed files
- Creating and updating tracking comments
- Creating inline review comments

Includes rate limiting and retry logic for API resilience. This is the only
place in the package that retries anything; callers see either a result or
a GitHubAPIError.
"""

import asyncio
import random
import time
from typing import Any, Dict, List, Optional

import httpx
import structlog

logger = structlog.get_logger()


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Async GitHub API client with rate limiting and retry logic.

    This client implements:

    - Automatic retry with exponential backoff for transient failures
    - Rate limit handling by respecting X-RateLimit-* headers
    - Support for both github.com and GitHub Enterprise Server

    Attributes:
        token: GitHub API token (installation or workflow token).
        base_url: Base URL for GitHub API (default: https://api.github.com).
        max_retries: Maximum number of retry attempts for transient failures.
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Maximum delay in seconds between retries.
        timeout: Request timeout in seconds.

    Example:
        >>> async with GitHubClient(token="ghs_xxx") as client:
        ...     await client.get_collaborator_permission("owner", "repo", "octocat")
    """

    # HTTP status codes that should trigger a retry
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API. Use this to support
                      GitHub Enterprise Server endpoints.
            max_retries: Maximum number of retry attempts.
            base_delay: Base delay in seconds for exponential backoff.
            max_delay: Maximum delay in seconds between retries.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used to stub the API.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "agent-action-prepare/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with full jitter for a 0-indexed attempt."""
        exponential_delay = self.base_delay * (2 ** attempt)
        capped_delay = min(exponential_delay, self.max_delay)
        return random.uniform(0, capped_delay)

    def _parse_int_header(self, headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    async def _handle_rate_limit(self, response: httpx.Response) -> None:
        """Raise RateLimitError with information about when to retry."""
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            reset_at=reset_at,
            retry_after=retry_after,
        )

        raise RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, PATCH, ...).
            path: API path (e.g., /repos/owner/repo/issues/1/comments).
            json_data: Optional JSON body for the request.
            params: Optional query parameters.

        Returns:
            The HTTP response from GitHub.

        Raises:
            GitHubAPIError: If the request fails after all retries.
            RateLimitError: If rate limit is exceeded.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(
                    method=method,
                    url=path,
                    json=json_data,
                    params=params,
                )

                if response.status_code == 403:
                    remaining = self._parse_int_header(
                        response.headers, "x-ratelimit-remaining"
                    )
                    if remaining == 0:
                        await self._handle_rate_limit(response)

                if response.status_code == 429:
                    if attempt >= self.max_retries:
                        await self._handle_rate_limit(response)
                    retry_after = self._parse_int_header(response.headers, "retry-after")
                    delay = min(
                        retry_after if retry_after is not None else self._calculate_backoff(attempt),
                        self.max_delay,
                    )
                    logger.warning(
                        "Secondary rate limit hit, retrying",
                        attempt=attempt + 1,
                        delay=delay,
                        path=path,
                    )
                    await asyncio.sleep(delay)
                    continue

                if response.status_code in self.RETRYABLE_STATUS_CODES:
                    if attempt < self.max_retries:
                        delay = self._calculate_backoff(attempt)
                        logger.warning(
                            "Retryable error from GitHub API",
                            status_code=response.status_code,
                            attempt=attempt + 1,
                            max_retries=self.max_retries,
                            delay=delay,
                            path=path,
                        )
                        await asyncio.sleep(delay)
                        continue

                if response.status_code >= 400:
                    error_body = response.text
                    logger.error(
                        "GitHub API error",
                        status_code=response.status_code,
                        path=path,
                        method=method,
                        response_body=error_body[:500],
                    )
                    raise GitHubAPIError(
                        message=_error_message(response),
                        status_code=response.status_code,
                        response_body=error_body,
                        request_url=str(response.url),
                    )

                return response

            except GitHubAPIError:
                raise
            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Request error, retrying",
                        error=str(e),
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay=delay,
                        path=path,
                    )
                    await asyncio.sleep(delay)
                    continue

        logger.error(
            "GitHub API request failed after all retries",
            path=path,
            method=method,
            max_retries=self.max_retries,
            last_error=str(last_exception),
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {last_exception}",
            request_url=f"{self.base_url}{path}",
        )

    async def _get_json(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        response = await self._request(method="GET", path=path, params=params)
        return response.json()

    # ------------------------------------------------------------------
    # Users and permissions
    # ------------------------------------------------------------------

    async def get_collaborator_permission(
        self, owner: str, repo: str, username: str
    ) -> str:
        """Get a user's permission level on a repository.

        Returns:
            One of "admin", "write", "read", "none" (as reported by GitHub).
        """
        data = await self._get_json(
            f"/repos/{owner}/{repo}/collaborators/{username}/permission"
        )
        return data.get("permission", "none")

    async def get_user(self, username: str) -> Dict[str, Any]:
        return await self._get_json(f"/users/{username}")

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}")

    # ------------------------------------------------------------------
    # Issues and pull requests
    # ------------------------------------------------------------------

    async def get_issue(
        self, owner: str, repo: str, issue_number: int
    ) -> Dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}/issues/{issue_number}")

    async def get_pull_request(
        self, owner: str, repo: str, pr_number: int
    ) -> Dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}/pulls/{pr_number}")

    async def list_issue_comments(
        self, owner: str, repo: str, issue_number: int
    ) -> List[Dict[str, Any]]:
        return await self._get_json(
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            params={"per_page": 100},
        )

    async def list_pull_request_files(
        self, owner: str, repo: str, pr_number: int
    ) -> List[Dict[str, Any]]:
        return await self._get_json(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/files",
            params={"per_page": 100},
        )

    async def list_pull_request_reviews(
        self, owner: str, repo: str, pr_number: int
    ) -> List[Dict[str, Any]]:
        return await self._get_json(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews",
            params={"per_page": 100},
        )

    async def list_review_comments(
        self, owner: str, repo: str, pr_number: int
    ) -> List[Dict[str, Any]]:
        return await self._get_json(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/comments",
            params={"per_page": 100},
        )

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def create_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Create a comment on an issue or pull request.

        Raises:
            GitHubAPIError: If the request fails.
        """
        logger.info(
            "Creating comment on issue",
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            body_length=len(body),
        )

        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json_data={"body": body},
        )

        result = response.json()
        logger.info(
            "Comment created successfully",
            issue_number=issue_number,
            comment_id=result.get("id"),
        )
        return result

    async def update_comment(
        self, owner: str, repo: str, comment_id: int, body: str
    ) -> Dict[str, Any]:
        response = await self._request(
            method="PATCH",
            path=f"/repos/{owner}/{repo}/issues/comments/{comment_id}",
            json_data={"body": body},
        )
        return response.json()

    async def update_review_comment(
        self, owner: str, repo: str, comment_id: int, body: str
    ) -> Dict[str, Any]:
        response = await self._request(
            method="PATCH",
            path=f"/repos/{owner}/{repo}/pulls/comments/{comment_id}",
            json_data={"body": body},
        )
        return response.json()

    async def create_review_comment_reply(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        comment_id: int,
        body: str,
    ) -> Dict[str, Any]:
        """Reply in the thread of an existing review comment."""
        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/pulls/{pr_number}/comments/{comment_id}/replies",
            json_data={"body": body},
        )
        return response.json()

    async def create_review_comment(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Create an inline review comment on a pull request.

        Args:
            params: Body of the create-review-comment call (path, body,
                    line, side, commit_id and optionally start_line,
                    start_side).
        """
        logger.info(
            "Creating inline review comment",
            owner=owner,
            repo=repo,
            pr_number=pr_number,
            path=params.get("path"),
        )
        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/pulls/{pr_number}/comments",
            json_data=params,
        )
        return response.json()


def _error_message(response: httpx.Response) -> str:
    """Prefer GitHub's own error message over the bare status code."""
    try:
        message = response.json().get("message")
    except (ValueError, AttributeError):
        message = None
    if message:
        return f"GitHub API error {response.status_code}: {message}"
    return f"GitHub API error: {response.status_code}"
