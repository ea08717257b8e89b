"""
Commit Checker Module

This module validates commit messages against the Conventional Commits format:

    <type>[optional scope][!]: <description>

    [optional body]

    [optional footer(s)]

Design Decisions:
- Only the header decides validity; bodies and footers are free-form
- Types are case-sensitive, matching what Release Please accepts
- Merge commits created by the GitHub UI can be skipped
"""

import re
from typing import Iterable, Optional, Tuple

from commit_sentinel.config import get_settings
from commit_sentinel.logging_config import get_logger
from commit_sentinel.models import CommitCheckResult, CommitType, ConventionalCommit

logger = get_logger(__name__)


# Regex pattern for headers: type(scope)!: description
HEADER_PATTERN = re.compile(
    r"^(?P<type>[A-Za-z]+)"
    r"(?:\((?P<scope>[^()\r\n]*)\))?"
    r"(?P<breaking>!)?"
    r": (?P<description>.*)$"
)

MERGE_PREFIX = "Merge "


class CommitChecker:
    """
    Validator for conventional commit messages.

    Usage:
        checker = CommitChecker(allowed_types=["feat", "fix"])
        result = checker.check("feat(api): add endpoint")
    """

    def __init__(
        self,
        allowed_types: Optional[Iterable[str]] = None,
        ignore_merge_commits: bool = True,
        max_header_length: Optional[int] = None
    ):
        """
        Initialize the checker.

        Args:
            allowed_types: Accepted commit types (defaults to every CommitType)
            ignore_merge_commits: Treat "Merge ..." headers as skipped
            max_header_length: Reject headers longer than this, if set
        """
        if allowed_types is None:
            allowed_types = [t.value for t in CommitType]
        self.allowed_types = frozenset(allowed_types)
        self.ignore_merge_commits = ignore_merge_commits
        self.max_header_length = max_header_length

    def parse(self, message: str) -> Optional[ConventionalCommit]:
        """
        Parse a commit message into its conventional parts.

        Args:
            message: Full commit message

        Returns:
            ConventionalCommit, or None if the header does not follow the format
        """
        header, body = split_message(message)
        if not header:
            return None

        match = HEADER_PATTERN.match(header)
        if not match:
            return None

        commit_type = match.group("type")
        if commit_type not in {t.value for t in CommitType}:
            return None

        description = match.group("description").strip()
        if not description:
            return None

        scope = match.group("scope")
        if scope is not None:
            scope = scope.strip()
            if not scope:
                return None

        return ConventionalCommit(
            type=commit_type,
            scope=scope,
            breaking=match.group("breaking") is not None or _has_breaking_footer(body),
            description=description,
            body=body,
            header=header
        )

    def check(self, message: str) -> CommitCheckResult:
        """
        Check a commit message.

        Args:
            message: Full commit message

        Returns:
            CommitCheckResult describing whether the message is acceptable
        """
        header, _ = split_message(message or "")

        if not header:
            return CommitCheckResult(valid=False, reason="empty message")

        if self.ignore_merge_commits and header.startswith(MERGE_PREFIX):
            logger.debug("Skipping merge commit", header=header)
            return CommitCheckResult(valid=True, skipped=True, reason="merge commit")

        if self.max_header_length and len(header) > self.max_header_length:
            return CommitCheckResult(
                valid=False,
                reason=f"header too long ({len(header)} > {self.max_header_length})"
            )

        parsed = self.parse(message)
        if parsed is None:
            return CommitCheckResult(valid=False, reason=self._explain(header))

        if parsed.type not in self.allowed_types:
            return CommitCheckResult(
                valid=False,
                reason=f"commit type '{parsed.type}' is not allowed",
                parsed=parsed
            )

        return CommitCheckResult(valid=True, parsed=parsed)

    def _explain(self, header: str) -> str:
        """Get a human-readable reason for a header that failed to parse."""
        match = HEADER_PATTERN.match(header)
        if not match:
            if ":" not in header:
                return "missing '<type>: ' prefix"
            return "header does not match '<type>[(scope)][!]: <description>'"
        if match.group("type") not in {t.value for t in CommitType}:
            return f"unknown commit type '{match.group('type')}'"
        if match.group("scope") is not None and not match.group("scope").strip():
            return "empty scope"
        return "missing description"


def split_message(message: str) -> Tuple[str, Optional[str]]:
    """
    Split a commit message into header and body.

    The header is the first non-empty line. The body is everything after
    the first blank line that follows it; lines that run on directly from
    the header are not part of the body.
    """
    lines = message.strip().splitlines()
    if not lines:
        return "", None

    header = lines[0].strip()
    for index, line in enumerate(lines[1:], start=1):
        if not line.strip():
            body = "\n".join(lines[index + 1:]).strip()
            return header, body or None
    return header, None


def _has_breaking_footer(body: Optional[str]) -> bool:
    if not body:
        return False
    return any(
        line.startswith(("BREAKING CHANGE:", "BREAKING-CHANGE:"))
        for line in body.splitlines()
    )


# Singleton instance
_checker_instance: Optional[CommitChecker] = None


def get_commit_checker() -> CommitChecker:
    """Get the singleton CommitChecker configured from settings."""
    global _checker_instance
    if _checker_instance is None:
        settings = get_settings()
        _checker_instance = CommitChecker(
            allowed_types=settings.allowed_commit_types_list,
            ignore_merge_commits=settings.ignore_merge_commits,
            max_header_length=settings.max_header_length
        )
    return _checker_instance


def check_commit_message(
    message: str,
    allowed_types: Optional[Iterable[str]] = None,
    ignore_merge_commits: bool = True,
    max_header_length: Optional[int] = None
) -> CommitCheckResult:
    """Convenience wrapper around CommitChecker.check."""
    checker = CommitChecker(allowed_types, ignore_merge_commits, max_header_length)
    return checker.check(message)


def parse_commit_message(message: str) -> Optional[ConventionalCommit]:
    """Convenience wrapper around CommitChecker.parse."""
    return CommitChecker().parse(message)
