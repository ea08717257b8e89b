"""
Data Models Module

This module defines all Pydantic models used throughout the application.
Strong typing ensures data integrity and provides clear contracts between components.

Design Decisions:
- Use Pydantic models for all data transfer objects
- Only declare the payload fields we read; GitHub sends many more
- Clear separation between GitHub models, commit check models, and internal models
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

BRANCH_REF_PREFIX = "refs/heads/"


# =============================================================================
# Enums
# =============================================================================

class CommitType(str, Enum):
    """Conventional commit types understood by Release Please."""
    FEAT = "feat"
    FIX = "fix"
    DOCS = "docs"
    STYLE = "style"
    REFACTOR = "refactor"
    PERF = "perf"
    TEST = "test"
    BUILD = "build"
    CI = "ci"
    CHORE = "chore"
    REVERT = "revert"

    @property
    def description(self) -> str:
        return COMMIT_TYPE_DESCRIPTIONS[self]


COMMIT_TYPE_DESCRIPTIONS = {
    CommitType.FEAT: "A new feature",
    CommitType.FIX: "A bug fix",
    CommitType.DOCS: "Documentation only changes",
    CommitType.STYLE: "Changes that do not affect the meaning of the code",
    CommitType.REFACTOR: "A code change that neither fixes a bug nor adds a feature",
    CommitType.PERF: "A code change that improves performance",
    CommitType.TEST: "Adding missing tests or correcting existing tests",
    CommitType.BUILD: "Changes that affect the build system or external dependencies",
    CommitType.CI: "Changes to CI configuration files and scripts",
    CommitType.CHORE: "Other changes that don't modify src or test files",
    CommitType.REVERT: "Reverts a previous commit",
}


class EnforcementOutcome(str, Enum):
    """What happened to a pushed head commit."""
    COMPLIANT = "compliant"
    SKIPPED = "skipped"
    ISSUE_CREATED = "issue_created"
    ALREADY_REPORTED = "already_reported"
    DRY_RUN = "dry_run"


# =============================================================================
# GitHub Webhook Models
# =============================================================================

class GitHubUser(BaseModel):
    """GitHub user or organization information."""
    login: Optional[str] = None
    name: Optional[str] = None
    id: Optional[int] = None
    type: str = "User"

    @property
    def handle(self) -> str:
        """Login when present; push payloads sometimes only carry a name."""
        return self.login or self.name or ""


class GitHubRepository(BaseModel):
    """GitHub repository information."""
    id: Optional[int] = None
    name: str
    full_name: str
    private: bool = False
    owner: GitHubUser
    html_url: Optional[str] = None
    default_branch: str = "main"


class GitHubInstallation(BaseModel):
    """GitHub App installation information."""
    id: int


class CommitAuthor(BaseModel):
    """Git author attached to a pushed commit."""
    name: str
    email: str = ""
    username: Optional[str] = None


class HeadCommit(BaseModel):
    """
    The commit at the tip of a push.

    Attributes:
        id: Full commit SHA
        message: Complete commit message (header, body and footers)
        author: Git author; ``username`` is set only when GitHub matched the email
        url: Web URL of the commit
        timestamp: ISO-8601 commit timestamp as sent by GitHub
    """
    id: str
    message: str
    author: CommitAuthor
    url: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def short_sha(self) -> str:
        return self.id[:7]


class PushWebhookPayload(BaseModel):
    """Push event webhook payload."""
    ref: str
    before: Optional[str] = None
    after: Optional[str] = None
    repository: GitHubRepository
    pusher: Optional[GitHubUser] = None
    sender: Optional[GitHubUser] = None
    installation: Optional[GitHubInstallation] = None
    head_commit: Optional[HeadCommit] = None
    deleted: bool = False

    @property
    def branch(self) -> Optional[str]:
        """Branch name for branch pushes, None for tags and other refs."""
        if not self.ref.startswith(BRANCH_REF_PREFIX):
            return None
        return self.ref[len(BRANCH_REF_PREFIX):]


# =============================================================================
# Commit Check Models
# =============================================================================

class ConventionalCommit(BaseModel):
    """
    A commit message that follows ``<type>[(scope)][!]: <description>``.
    """
    type: CommitType
    scope: Optional[str] = None
    breaking: bool = False
    description: str = Field(min_length=1)
    body: Optional[str] = None
    header: str

    class Config:
        use_enum_values = True


class CommitCheckResult(BaseModel):
    """Outcome of checking one commit message."""
    valid: bool
    skipped: bool = False
    reason: Optional[str] = None
    parsed: Optional[ConventionalCommit] = None


# =============================================================================
# GitHub Issue Models
# =============================================================================

class IssueRequest(BaseModel):
    """
    Request to create an issue on GitHub.

    This maps to GitHub's create-issue API structure.
    """
    title: str = Field(min_length=1)
    body: str
    labels: List[str] = Field(default_factory=list)
    assignees: List[str] = Field(default_factory=list)


class CreatedIssue(BaseModel):
    """The subset of GitHub's issue response we keep."""
    number: int
    html_url: str
    title: str
    body: Optional[str] = None


# =============================================================================
# Internal Processing Models
# =============================================================================

class PushContext(BaseModel):
    """
    Complete context for enforcing the commit convention on one push.

    This is the main data structure passed through the enforcement pipeline.
    """
    owner: str
    repo: str
    branch: str
    head_commit: HeadCommit
    installation_id: Optional[int] = None
    delivery_id: Optional[str] = None

    @property
    def full_repo_name(self) -> str:
        """Get the full repository name (owner/repo)."""
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_payload(
        cls,
        payload: PushWebhookPayload,
        delivery_id: Optional[str] = None
    ) -> "PushContext":
        """Build a context from a branch push that carries a head commit."""
        if payload.head_commit is None or payload.branch is None:
            raise ValueError("Push payload has no head commit on a branch")

        owner, _, repo = payload.repository.full_name.partition("/")
        return cls(
            owner=owner or payload.repository.owner.handle,
            repo=repo or payload.repository.name,
            branch=payload.branch,
            head_commit=payload.head_commit,
            installation_id=payload.installation.id if payload.installation else None,
            delivery_id=delivery_id,
        )


class EnforcementResult(BaseModel):
    """Result of processing one push."""
    outcome: EnforcementOutcome
    commit_sha: str
    check: CommitCheckResult
    issue: Optional[CreatedIssue] = None
