"""
Violation Issue Builder Module

This module renders the GitHub issue that reports a commit message which
does not follow the conventional commit format.

Design Decisions:
- Keep the issue text in one place so the webhook and the CI runner agree
- Fence the offending message safely even if it contains backticks
- Prefer the author's GitHub username for assignment, falling back to the git name
"""

import re
from typing import List, Optional

from commit_sentinel.config import Settings, get_settings
from commit_sentinel.models import CommitType, HeadCommit, IssueRequest

CONVENTIONAL_COMMITS_URL = "https://www.conventionalcommits.org/"
RELEASE_PLEASE_URL = "https://github.com/googleapis/release-please"

_BACKTICK_RUN = re.compile(r"`{3,}")


def render_issue_title(branch: str) -> str:
    """Title for a violation issue on the given branch."""
    return f"🚨 Invalid commit message format on {branch} branch"


def _code_fence(content: str) -> str:
    """Return a backtick fence longer than any backtick run inside content."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(content)), default=2)
    return "`" * max(3, longest + 1)


def _valid_types_section() -> str:
    return "\n".join(f"- `{t.value}`: {t.description}" for t in CommitType)


def render_issue_body(commit: HeadCommit, branch: str) -> str:
    """
    Render the Markdown body of a violation issue.

    Args:
        commit: The offending head commit
        branch: Branch the commit was pushed to

    Returns:
        Markdown issue body
    """
    fence = _code_fence(commit.message)
    message = commit.message.rstrip("\n")

    return f"""## Commit Message Format Violation

A commit was merged to the `{branch}` branch that doesn't follow the conventional commit message format required by Release Please.

### Details:
- **Author**: {commit.author.name} ({commit.author.email})
- **Commit SHA**: `{commit.id}`
- **Commit Message**:
{fence}
{message}
{fence}

### Expected Format:
Conventional commit messages should follow this pattern:
```
<type>[optional scope]: <description>

[optional body]

[optional footer(s)]
```

### Valid Types:
{_valid_types_section()}

### Action Required:
Please update the commit message to follow the conventional format. You can do this by:
1. Creating a new commit with the correct format, or
2. Using `git commit --amend` if this is the most recent commit

### Resources:
- [Conventional Commits Specification]({CONVENTIONAL_COMMITS_URL})
- [Release Please Documentation]({RELEASE_PLEASE_URL})

---
*This issue was automatically created by the commit message enforcement workflow.*"""


def resolve_assignees(commit: HeadCommit, assign_author: bool = True) -> List[str]:
    """
    Pick who the issue is assigned to.

    GitHub can only assign logins. The push payload carries ``username``
    when the commit email maps to an account; otherwise the git author
    name is used and GitHub may reject it (the client then retries
    without assignees).
    """
    if not assign_author:
        return []
    assignee = commit.author.username or commit.author.name
    return [assignee] if assignee else []


def build_violation_issue(
    commit: HeadCommit,
    branch: str,
    settings: Optional[Settings] = None
) -> IssueRequest:
    """
    Build the complete create-issue request for an offending commit.

    Args:
        commit: The offending head commit
        branch: Branch the commit was pushed to
        settings: Settings to read labels and assignment policy from

    Returns:
        IssueRequest ready to send to GitHub
    """
    settings = settings or get_settings()
    return IssueRequest(
        title=render_issue_title(branch),
        body=render_issue_body(commit, branch),
        labels=settings.issue_labels_list,
        assignees=resolve_assignees(commit, settings.assign_author)
    )
