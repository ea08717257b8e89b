"""
GitHub Authentication Service

This module provides the credentials used for GitHub API calls:
- GitHub App: JWT generation and installation access tokens with refresh
- Static token: a fixed token such as GITHUB_TOKEN inside GitHub Actions

Design Decisions:
- Use RS256 algorithm for JWT signing (GitHub requirement)
- Cache installation tokens to minimize API calls
- Refresh tokens 5 minutes before they expire
- Both providers expose the same get_installation_token() interface
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Union

import httpx
import jwt
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from commit_sentinel.config import Settings, get_settings
from commit_sentinel.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CachedToken:
    """Cached installation access token with expiration."""
    token: str
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        """Check if token is expired or will expire within 5 minutes."""
        buffer = timedelta(minutes=5)
        return datetime.now(timezone.utc) >= (self.expires_at - buffer)


class GitHubAuthError(Exception):
    """Custom exception for GitHub authentication errors."""
    pass


class GitHubAppAuth:
    """
    GitHub App Authentication Manager.

    Handles JWT generation and installation access token management
    for GitHub App authentication.

    Usage:
        auth = GitHubAppAuth()
        token = await auth.get_installation_token(installation_id)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the auth manager.

        Args:
            settings: Settings to use instead of the cached global ones
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings or get_settings()
        self._transport = transport
        self._private_key: Optional[str] = None
        # Cache tokens by installation_id
        self._token_cache: Dict[int, CachedToken] = {}

    @property
    def private_key(self) -> str:
        """Lazy load and cache the private key."""
        if self._private_key is None:
            try:
                self._private_key = self.settings.get_private_key()
            except ValueError as e:
                raise GitHubAuthError(str(e)) from e
            logger.debug("Loaded GitHub App private key")
        return self._private_key

    def generate_jwt(self) -> str:
        """
        Generate a JWT for GitHub App authentication.

        The JWT is used to authenticate as the GitHub App itself,
        not as an installation. It's valid for up to 10 minutes.

        Returns:
            Signed JWT string

        Raises:
            GitHubAuthError: If JWT generation fails
        """
        if not self.settings.github_app_id:
            raise GitHubAuthError("GITHUB_APP_ID is not configured")

        now = int(time.time())
        payload = {
            # Issued at time (60 seconds in the past for clock drift)
            "iat": now - 60,
            # Expiration time (10 minute maximum)
            "exp": now + (9 * 60),
            "iss": self.settings.github_app_id,
        }

        try:
            token = jwt.encode(payload, self.private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError) as e:
            # cryptography rejects malformed PEM data with ValueError
            logger.error("Failed to generate JWT", error=str(e))
            raise GitHubAuthError(f"Failed to generate JWT: {e}") from e

        logger.debug("Generated GitHub App JWT", app_id=self.settings.github_app_id)
        return token

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    async def _fetch_installation_token(self, installation_id: int) -> CachedToken:
        """
        Fetch a new installation access token from GitHub.

        Args:
            installation_id: GitHub App installation ID

        Returns:
            CachedToken with the access token and expiration

        Raises:
            GitHubAuthError: If token fetch fails
        """
        jwt_token = self.generate_jwt()

        url = f"{self.settings.github_api_url}/app/installations/{installation_id}/access_tokens"

        headers = {
            "Authorization": f"Bearer {jwt_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
            try:
                response = await client.post(url, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                error_body = e.response.text
                logger.error(
                    "Failed to get installation token",
                    installation_id=installation_id,
                    status_code=e.response.status_code,
                    error=error_body[:500]
                )
                raise GitHubAuthError(
                    f"Failed to get installation token: {e.response.status_code} - {error_body}"
                ) from e

        data = response.json()
        expires_at = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))

        logger.info(
            "Obtained installation access token",
            installation_id=installation_id,
            expires_at=expires_at.isoformat()
        )

        return CachedToken(token=data["token"], expires_at=expires_at)

    async def get_installation_token(self, installation_id: Optional[int]) -> str:
        """
        Get an installation access token, using cache when possible.

        Args:
            installation_id: GitHub App installation ID

        Returns:
            Valid installation access token

        Raises:
            GitHubAuthError: If authentication fails
        """
        if installation_id is None:
            raise GitHubAuthError(
                "Push payload has no installation; GitHub App auth needs one"
            )

        cached = self._token_cache.get(installation_id)

        if cached and not cached.is_expired:
            logger.debug(
                "Using cached installation token",
                installation_id=installation_id
            )
            return cached.token

        logger.debug(
            "Fetching new installation token",
            installation_id=installation_id,
            reason="expired" if cached else "not_cached"
        )

        new_token = await self._fetch_installation_token(installation_id)
        self._token_cache[installation_id] = new_token

        return new_token.token

    def invalidate_token(self, installation_id: Optional[int]) -> None:
        """
        Invalidate a cached token.

        Call this if an API request fails with 401 Unauthorized,
        indicating the token may have been revoked.
        """
        if installation_id in self._token_cache:
            del self._token_cache[installation_id]
            logger.info(
                "Invalidated cached token",
                installation_id=installation_id
            )


class StaticTokenAuth:
    """
    Token provider for a fixed token.

    Used when running inside GitHub Actions (GITHUB_TOKEN) or with a
    personal access token. The installation ID is ignored.
    """

    def __init__(self, token: str):
        if not token:
            raise GitHubAuthError("Static GitHub token is empty")
        self._token = token

    async def get_installation_token(self, installation_id: Optional[int] = None) -> str:
        return self._token

    def invalidate_token(self, installation_id: Optional[int] = None) -> None:
        # A static token cannot be refreshed; the next request fails again
        logger.warning("Static GitHub token was rejected")


GitHubAuth = Union[GitHubAppAuth, StaticTokenAuth]

# Singleton instance for the application
_auth_instance: Optional[GitHubAuth] = None


def get_github_auth() -> GitHubAuth:
    """
    Get the singleton auth provider.

    Returns:
        StaticTokenAuth when GITHUB_TOKEN is set, GitHubAppAuth otherwise
    """
    global _auth_instance
    if _auth_instance is None:
        settings = get_settings()
        if settings.github_token:
            _auth_instance = StaticTokenAuth(settings.github_token)
        else:
            _auth_instance = GitHubAppAuth(settings)
    return _auth_instance


def reset_github_auth() -> None:
    """Forget the cached provider (after settings change)."""
    global _auth_instance
    _auth_instance = None
