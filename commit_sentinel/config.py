"""
Configuration Management Module

This module handles all application configuration using Pydantic Settings.
Configuration is loaded from environment variables with strong typing and validation.

Design Decisions:
- Use Pydantic Settings for automatic environment variable loading
- Provide sensible defaults for optional settings
- Validate configuration at startup (fail-fast approach)
- Support a GitHub App (private key) or a plain token (e.g. GITHUB_TOKEN in Actions)
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COMMIT_TYPES = "feat,fix,docs,style,refactor,perf,test,build,ci,chore,revert"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values are loaded from environment variables only,
    never hardcoded or logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =========================================================================
    # GitHub Credentials
    # =========================================================================
    github_app_id: Optional[str] = Field(
        default=None,
        description="GitHub App ID from app settings"
    )

    github_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to GitHub App private key .pem file"
    )

    github_private_key: Optional[str] = Field(
        default=None,
        description="GitHub App private key content (alternative to path)"
    )

    github_token: Optional[str] = Field(
        default=None,
        description="Static token used instead of GitHub App authentication"
    )

    github_webhook_secret: str = Field(
        default="",
        description="Webhook secret for signature verification"
    )

    github_api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API"
    )

    # =========================================================================
    # Enforcement Policy
    # =========================================================================
    enforced_branch: str = Field(
        default="main",
        description="Branch whose pushes are checked"
    )

    allowed_commit_types: str = Field(
        default=DEFAULT_COMMIT_TYPES,
        description="Comma-separated conventional commit types that are accepted"
    )

    ignore_merge_commits: bool = Field(
        default=True,
        description="Skip commits whose header starts with 'Merge '"
    )

    max_header_length: Optional[int] = Field(
        default=None,
        ge=10,
        description="Maximum length of the commit header line"
    )

    # =========================================================================
    # Issue Filing
    # =========================================================================
    issue_labels: str = Field(
        default="bug,documentation,enhancement",
        description="Comma-separated labels applied to violation issues"
    )

    assign_author: bool = Field(
        default=True,
        description="Assign the violation issue to the commit author"
    )

    dry_run: bool = Field(
        default=False,
        description="Log violation issues instead of creating them"
    )

    # =========================================================================
    # Rate Limiting
    # =========================================================================
    github_rate_limit: int = Field(
        default=5000,
        ge=100,
        description="GitHub API rate limit per hour"
    )

    # =========================================================================
    # Retry Configuration
    # =========================================================================
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts per GitHub API request"
    )

    retry_base_delay: float = Field(
        default=1.0,
        ge=0.1,
        description="Base delay between retries in seconds"
    )

    retry_max_delay: float = Field(
        default=30.0,
        ge=1.0,
        description="Maximum delay between retries in seconds"
    )

    rate_limit_max_wait: float = Field(
        default=3600.0,
        ge=0.0,
        description="Longest wait for a GitHub rate limit reset in seconds"
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port to bind the server"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    log_requests: bool = Field(
        default=False,
        description="Enable request/response logging"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("allowed_commit_types")
    @classmethod
    def validate_commit_types(cls, v: str) -> str:
        """Ensure every configured commit type is a known conventional type."""
        known = set(DEFAULT_COMMIT_TYPES.split(","))
        types = [t.strip() for t in v.split(",") if t.strip()]
        if not types:
            raise ValueError("At least one commit type must be allowed")
        unknown = sorted(set(types) - known)
        if unknown:
            raise ValueError(f"Unknown commit types: {unknown}. Must be among {sorted(known)}")
        return ",".join(types)

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def issue_labels_list(self) -> List[str]:
        """Get list of labels for violation issues."""
        return [label.strip() for label in self.issue_labels.split(",") if label.strip()]

    @property
    def allowed_commit_types_list(self) -> List[str]:
        """Get list of accepted commit types."""
        return self.allowed_commit_types.split(",")

    @property
    def uses_app_auth(self) -> bool:
        """True when no static token is configured and the GitHub App is used."""
        return not self.github_token

    def get_private_key(self) -> str:
        """
        Get the GitHub App private key content.

        Supports two modes:
        1. Direct content via GITHUB_PRIVATE_KEY env var
        2. File path via GITHUB_PRIVATE_KEY_PATH env var

        Returns:
            Private key content as string

        Raises:
            ValueError: If neither option is configured or file doesn't exist
        """
        # Direct content takes precedence
        if self.github_private_key:
            # Handle newline escaping in env vars
            return self.github_private_key.replace("\\n", "\n")

        if self.github_private_key_path:
            key_path = Path(self.github_private_key_path)
            if not key_path.exists():
                raise ValueError(f"Private key file not found: {key_path}")
            return key_path.read_text()

        raise ValueError(
            "GitHub private key not configured. "
            "Set either GITHUB_PRIVATE_KEY or GITHUB_PRIVATE_KEY_PATH"
        )

    def validate_credentials(self) -> None:
        """
        Check that some way of authenticating against GitHub is configured.

        Raises:
            ValueError: If neither a token nor complete App credentials are set
        """
        if self.github_token:
            return
        if not self.github_app_id:
            raise ValueError(
                "GitHub credentials not configured. "
                "Set GITHUB_TOKEN or GITHUB_APP_ID with a private key"
            )
        self.get_private_key()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once,
    which is important for performance and consistency.

    Returns:
        Settings instance
    """
    return Settings()
