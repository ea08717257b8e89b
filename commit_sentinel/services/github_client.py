"""
GitHub API Client Module

This module provides a client for the parts of the GitHub API we use:
creating issues and finding issues that were already filed for a commit.
It handles authentication, rate limiting and retries.

Design Decisions:
- Use httpx for async HTTP requests
- Integrate with GitHub App auth (or a static token) for token management
- Implement exponential backoff for transport errors and rate limits
- Never retry a request GitHub answered with an ordinary client error,
  so an issue is not created twice
"""

import asyncio
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import httpx
from aiolimiter import AsyncLimiter
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from commit_sentinel.config import Settings, get_settings
from commit_sentinel.logging_config import get_logger
from commit_sentinel.models import CreatedIssue, IssueRequest
from commit_sentinel.services.github_auth import GitHubAuth, GitHubAuthError, get_github_auth

logger = get_logger(__name__)

ISSUE_SEARCH_MAX_PAGES = 5


class GitHubAPIError(Exception):
    """Custom exception for GitHub API errors."""
    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GitHubRateLimitError(GitHubAPIError):
    """Exception raised when GitHub rate limit is exceeded."""
    pass


def _parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    """
    Parse a Retry-After header into seconds.

    Accepts both delay-seconds and HTTP-date forms. Returns None when the
    header is absent or unreadable.
    """
    if not value:
        return None

    seconds = _parse_int(value.strip())
    if seconds is not None:
        return max(0, seconds)

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0, int((retry_at - datetime.now(timezone.utc)).total_seconds()))


class GitHubClient:
    """
    Async GitHub API client with authentication and rate limiting.

    Usage:
        client = GitHubClient(installation_id=123)
        issue = await client.create_issue("owner", "repo", issue_request)
    """

    def __init__(
        self,
        installation_id: Optional[int] = None,
        auth: Optional[GitHubAuth] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the GitHub client.

        Args:
            installation_id: GitHub App installation ID (unused with a static token)
            auth: Token provider; defaults to the application-wide provider
            settings: Settings to use instead of the cached global ones
            transport: Optional httpx transport (used by tests)
        """
        self.installation_id = installation_id
        self.settings = settings or get_settings()
        self.auth = auth or get_github_auth()
        self._transport = transport

        self._rate_limiter = AsyncLimiter(
            max_rate=self.settings.github_rate_limit,
            time_period=3600
        )

    async def _get_headers(self) -> Dict[str, str]:
        """Get authenticated headers for API requests."""
        token = await self.auth.get_installation_token(self.installation_id)
        return {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _handle_rate_limit(self, response: httpx.Response) -> None:
        """
        Handle rate limit headers from GitHub response.

        Logs a warning when the quota is running low. When GitHub refused
        the request because the quota is exhausted, waits for the reset
        (bounded by rate_limit_max_wait) and raises GitHubRateLimitError
        so it is retried.
        """
        remaining = _parse_int(response.headers.get("x-ratelimit-remaining"))
        reset_time = _parse_int(response.headers.get("x-ratelimit-reset"))

        if remaining is not None and remaining < 100:
            logger.warning(
                "GitHub API rate limit running low",
                remaining=remaining,
                reset_at=reset_time
            )

        if response.status_code not in (403, 429):
            return

        sleep_time = _parse_retry_after(response.headers.get("retry-after"))
        if sleep_time is None:
            if remaining != 0 or reset_time is None:
                return
            sleep_time = max(0, reset_time - int(time.time())) + 5

        sleep_time = min(sleep_time, int(self.settings.rate_limit_max_wait))
        logger.warning(
            "Rate limit exceeded, waiting before retry",
            sleep_seconds=sleep_time
        )
        await asyncio.sleep(sleep_time)
        raise GitHubRateLimitError(
            "Rate limit exceeded",
            status_code=response.status_code,
            response_body=response.text
        )

    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """Send a single request and translate error statuses into exceptions."""
        async with self._rate_limiter:
            headers = await self._get_headers()
            url = f"{self.settings.github_api_url}{endpoint}"

            async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
                response = await client.request(method, url, headers=headers, **kwargs)

            await self._handle_rate_limit(response)

            if response.status_code == 401:
                # Token might be invalidated, clear cache
                self.auth.invalidate_token(self.installation_id)
                raise GitHubAuthError("Authentication failed, token invalidated")

            if response.status_code >= 400:
                error_body = response.text
                logger.error(
                    "GitHub API error",
                    status_code=response.status_code,
                    endpoint=endpoint,
                    error=error_body[:500]  # Limit error length
                )
                raise GitHubAPIError(
                    f"GitHub API error: {response.status_code}",
                    status_code=response.status_code,
                    response_body=error_body
                )

            return response

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make an authenticated request to the GitHub API with retries.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments to pass to httpx

        Returns:
            httpx.Response object

        Raises:
            GitHubAPIError: If the request fails
            GitHubAuthError: If GitHub rejects the credentials
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_retries),
            wait=wait_exponential(
                multiplier=self.settings.retry_base_delay,
                max=self.settings.retry_max_delay
            ),
            retry=retry_if_exception_type((httpx.TransportError, GitHubRateLimitError)),
            reraise=True
        )

        async for attempt in retrying:
            with attempt:
                return await self._send(method, endpoint, **kwargs)

    async def create_issue(
        self,
        owner: str,
        repo: str,
        issue: IssueRequest
    ) -> CreatedIssue:
        """
        Create an issue in a repository.

        If GitHub rejects the request as unprocessable and assignees were
        requested (the author may not be assignable), the issue is created
        again without assignees.

        Args:
            owner: Repository owner
            repo: Repository name
            issue: Issue title, body, labels and assignees

        Returns:
            The created issue
        """
        endpoint = f"/repos/{owner}/{repo}/issues"

        logger.info(
            "Creating issue",
            owner=owner,
            repo=repo,
            title=issue.title,
            assignees=issue.assignees
        )

        try:
            response = await self._request("POST", endpoint, json=issue.model_dump())
        except GitHubAPIError as e:
            if e.status_code != 422 or not issue.assignees:
                raise
            logger.warning(
                "Issue rejected with assignees, retrying without them",
                owner=owner,
                repo=repo,
                assignees=issue.assignees
            )
            unassigned = issue.model_copy(update={"assignees": []})
            response = await self._request("POST", endpoint, json=unassigned.model_dump())

        return _to_created_issue(response.json())

    async def find_open_issue_for_commit(
        self,
        owner: str,
        repo: str,
        sha: str,
        labels: Optional[List[str]] = None
    ) -> Optional[CreatedIssue]:
        """
        Find an open issue whose body mentions a commit SHA.

        Only issues carrying all of the given labels are searched, which
        keeps the scan to issues this service could have filed.

        Args:
            owner: Repository owner
            repo: Repository name
            sha: Full commit SHA
            labels: Labels the issue must carry

        Returns:
            The matching issue, or None
        """
        endpoint = f"/repos/{owner}/{repo}/issues"
        per_page = 100
        params: Dict[str, Any] = {"state": "open", "per_page": per_page}
        if labels:
            params["labels"] = ",".join(labels)

        for page in range(1, ISSUE_SEARCH_MAX_PAGES + 1):
            response = await self._request("GET", endpoint, params={**params, "page": page})
            issues = response.json()

            for data in issues:
                # The issues endpoint also returns pull requests
                if "pull_request" in data:
                    continue
                if sha in (data.get("body") or ""):
                    logger.debug(
                        "Found existing issue for commit",
                        sha=sha,
                        issue_number=data["number"]
                    )
                    return _to_created_issue(data)

            if len(issues) < per_page:
                break

        return None


def _to_created_issue(data: Dict[str, Any]) -> CreatedIssue:
    return CreatedIssue(
        number=data["number"],
        html_url=data.get("html_url", ""),
        title=data.get("title", ""),
        body=data.get("body")
    )
