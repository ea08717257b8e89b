"""
Commit Enforcement Processor Module

This module orchestrates enforcement for one push: check the head commit
message and, when it violates the conventional commit format, file an
issue assigned to the commit author.

Design Decisions:
- Single responsibility: orchestrate the check and the issue filing
- Never file the same violation twice while an issue for it is open
- Log extensively for debugging and monitoring
- Support dry-run mode for testing
"""

from typing import Optional

import httpx

from commit_sentinel.config import Settings, get_settings
from commit_sentinel.logging_config import get_logger
from commit_sentinel.models import (
    CommitCheckResult,
    CreatedIssue,
    EnforcementOutcome,
    EnforcementResult,
    PushContext,
)
from commit_sentinel.services.commit_checker import CommitChecker, get_commit_checker
from commit_sentinel.services.github_auth import GitHubAuthError
from commit_sentinel.services.github_client import GitHubAPIError, GitHubClient
from commit_sentinel.services.issue_builder import build_violation_issue

logger = get_logger(__name__)


class EnforcementProcessorError(Exception):
    """Custom exception for enforcement processing errors."""
    pass


async def file_violation_issue(
    context: PushContext,
    client: Optional[GitHubClient] = None,
    settings: Optional[Settings] = None
) -> CreatedIssue:
    """
    File the violation issue for a push's head commit.

    The message is not checked again; callers invoke this once they know
    the commit violates the format.

    Args:
        context: Push context carrying the offending head commit
        client: GitHub client; one is created for the installation if omitted
        settings: Settings for labels and assignment policy

    Returns:
        The created issue

    Raises:
        GitHubAPIError: If GitHub rejects the request
        GitHubAuthError: If credentials are missing or rejected
    """
    settings = settings or get_settings()
    client = client or GitHubClient(context.installation_id, settings=settings)

    issue_request = build_violation_issue(context.head_commit, context.branch, settings)
    issue = await client.create_issue(context.owner, context.repo, issue_request)

    logger.info(
        f"Created issue #{issue.number} for commit message violation",
        issue_number=issue.number,
        issue_url=issue.html_url,
        repo=context.full_repo_name,
        commit_sha=context.head_commit.id
    )
    return issue


class CommitEnforcementProcessor:
    """
    Enforces the conventional commit format on one push.

    Usage:
        processor = CommitEnforcementProcessor(push_context)
        result = await processor.process()
    """

    def __init__(
        self,
        context: PushContext,
        settings: Optional[Settings] = None,
        client: Optional[GitHubClient] = None,
        checker: Optional[CommitChecker] = None
    ):
        """
        Initialize the processor.

        Args:
            context: Push context with the head commit
            settings: Settings to use instead of the cached global ones
            client: GitHub client (created lazily when an issue is needed)
            checker: Commit checker (defaults to the configured singleton)
        """
        self.context = context
        self.settings = settings or get_settings()
        self.checker = checker or get_commit_checker()
        self._client = client

    @property
    def client(self) -> GitHubClient:
        if self._client is None:
            self._client = GitHubClient(self.context.installation_id, settings=self.settings)
        return self._client

    async def process(self, skip_check: bool = False) -> EnforcementResult:
        """
        Execute enforcement for the push.

        Args:
            skip_check: File the issue without checking the message first

        Returns:
            EnforcementResult describing what happened
        """
        commit = self.context.head_commit

        logger.info(
            "Checking head commit",
            repo=self.context.full_repo_name,
            branch=self.context.branch,
            commit_sha=commit.id,
            author=commit.author.name,
            delivery_id=self.context.delivery_id
        )

        if skip_check:
            check = CommitCheckResult(valid=False, reason="check skipped by caller")
        else:
            check = self.checker.check(commit.message)

        if check.skipped:
            logger.info("Commit exempt from check", commit_sha=commit.id, reason=check.reason)
            return self._result(EnforcementOutcome.SKIPPED, check)

        if check.valid:
            logger.info("Commit message is compliant", commit_sha=commit.id)
            return self._result(EnforcementOutcome.COMPLIANT, check)

        logger.warning(
            "Commit message violates conventional format",
            repo=self.context.full_repo_name,
            commit_sha=commit.id,
            reason=check.reason
        )

        if self.settings.dry_run:
            issue_request = build_violation_issue(commit, self.context.branch, self.settings)
            logger.info(
                "Dry run, not creating issue",
                title=issue_request.title,
                labels=issue_request.labels,
                assignees=issue_request.assignees
            )
            return self._result(EnforcementOutcome.DRY_RUN, check)

        try:
            existing = await self.client.find_open_issue_for_commit(
                self.context.owner,
                self.context.repo,
                commit.id,
                labels=self.settings.issue_labels_list
            )
            if existing:
                logger.info(
                    "Violation already reported",
                    commit_sha=commit.id,
                    issue_number=existing.number
                )
                return self._result(EnforcementOutcome.ALREADY_REPORTED, check, existing)

            issue = await file_violation_issue(self.context, self.client, self.settings)
            return self._result(EnforcementOutcome.ISSUE_CREATED, check, issue)

        except (GitHubAPIError, GitHubAuthError, httpx.TransportError) as e:
            logger.error(
                "Failed to report commit violation",
                repo=self.context.full_repo_name,
                commit_sha=commit.id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise EnforcementProcessorError(f"Failed to report violation: {e}") from e

    def _result(
        self,
        outcome: EnforcementOutcome,
        check: CommitCheckResult,
        issue: Optional[CreatedIssue] = None
    ) -> EnforcementResult:
        return EnforcementResult(
            outcome=outcome,
            commit_sha=self.context.head_commit.id,
            check=check,
            issue=issue
        )


async def process_push(context: PushContext, skip_check: bool = False) -> EnforcementResult:
    """
    Convenience function to enforce the commit convention on a push.

    This is the main entry point for background task processing.
    """
    processor = CommitEnforcementProcessor(context)
    return await processor.process(skip_check=skip_check)
