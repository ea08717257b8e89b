"""
Services Package

This package contains all service modules for Commit Sentinel:
- github_auth: GitHub App / static token authentication
- github_client: GitHub API client
- commit_checker: Conventional commit validation
- issue_builder: Violation issue rendering
"""

from commit_sentinel.services.commit_checker import (
    CommitChecker,
    check_commit_message,
    get_commit_checker,
    parse_commit_message,
)
from commit_sentinel.services.github_auth import (
    GitHubAppAuth,
    GitHubAuthError,
    StaticTokenAuth,
    get_github_auth,
)
from commit_sentinel.services.github_client import GitHubAPIError, GitHubClient, GitHubRateLimitError
from commit_sentinel.services.issue_builder import (
    build_violation_issue,
    render_issue_body,
    render_issue_title,
)


__all__ = [
    "get_github_auth",
    "GitHubAppAuth",
    "StaticTokenAuth",
    "GitHubAuthError",
    "GitHubClient",
    "GitHubAPIError",
    "GitHubRateLimitError",
    "CommitChecker",
    "check_commit_message",
    "get_commit_checker",
    "parse_commit_message",
    "build_violation_issue",
    "render_issue_body",
    "render_issue_title",
]
