"""
CI Runner

Runs a single enforcement pass from inside a CI job (e.g. a GitHub Actions
step on pushes to main), reading the push payload from disk instead of
receiving it over HTTP.

Usage:
    python -m commit_sentinel.action [--event-path PATH] [--repository OWNER/REPO]
                                     [--skip-check] [--dry-run]

Exit codes:
    0  commit is compliant, exempt, already reported, or the issue was filed
    1  configuration or GitHub API failure
    2  the event payload could not be read or is not a push payload
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from commit_sentinel.config import Settings, get_settings
from commit_sentinel.logging_config import get_logger, setup_logging
from commit_sentinel.models import EnforcementResult, PushContext, PushWebhookPayload
from commit_sentinel.webhook.processor import CommitEnforcementProcessor, EnforcementProcessorError

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BAD_PAYLOAD = 2


class ConfigurationError(Exception):
    """Raised when the runner is missing required inputs."""
    pass


class PayloadError(Exception):
    """Raised when the event payload is unreadable or invalid."""
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="commit-sentinel",
        description="File an issue when the pushed head commit breaks the conventional commit format."
    )
    parser.add_argument(
        "--event-path",
        default=os.environ.get("GITHUB_EVENT_PATH"),
        help="Path to the push event JSON (default: $GITHUB_EVENT_PATH)"
    )
    parser.add_argument(
        "--repository",
        default=os.environ.get("GITHUB_REPOSITORY"),
        help="OWNER/REPO to file the issue in (default: $GITHUB_REPOSITORY, then the payload)"
    )
    parser.add_argument(
        "--skip-check",
        action="store_true",
        help="File the issue without checking the commit message"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the issue instead of creating it"
    )
    return parser


def load_payload(event_path: Optional[str]) -> PushWebhookPayload:
    """
    Read and validate a push event payload from disk.

    Raises:
        PayloadError: If the file is missing, not JSON, or not a push payload
    """
    if not event_path:
        raise PayloadError("No event path given and GITHUB_EVENT_PATH is not set")

    path = Path(event_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PayloadError(f"Cannot read event payload {path}: {e}") from e
    except ValueError as e:
        raise PayloadError(f"Event payload {path} is not valid JSON: {e}") from e

    try:
        return PushWebhookPayload.model_validate(data)
    except ValidationError as e:
        raise PayloadError(f"Event payload is not a push payload: {e}") from e


def build_context(payload: PushWebhookPayload, repository: Optional[str]) -> Optional[PushContext]:
    """
    Build the push context, overriding the repository when given.

    Returns:
        PushContext, or None when the push has no head commit on a branch

    Raises:
        ConfigurationError: If the repository override is not OWNER/REPO
    """
    if payload.deleted or payload.head_commit is None or payload.branch is None:
        return None

    context = PushContext.from_payload(payload)
    if repository:
        owner, sep, repo = repository.partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ConfigurationError(f"Repository must be OWNER/REPO, got '{repository}'")
        context = context.model_copy(update={"owner": owner, "repo": repo})
    return context


async def run(
    context: PushContext,
    settings: Settings,
    skip_check: bool = False
) -> EnforcementResult:
    processor = CommitEnforcementProcessor(context, settings=settings)
    return await processor.process(skip_check=skip_check)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error("Configuration error", error=str(e))
        return EXIT_FAILURE
    setup_logging()

    try:
        payload = load_payload(args.event_path)
    except PayloadError as e:
        logger.error("Invalid event payload", error=str(e))
        return EXIT_BAD_PAYLOAD

    try:
        context = build_context(payload, args.repository)
        if args.dry_run:
            settings = settings.model_copy(update={"dry_run": True})
        if not settings.dry_run:
            settings.validate_credentials()
    except (ConfigurationError, ValueError) as e:
        logger.error("Configuration error", error=str(e))
        return EXIT_FAILURE

    if context is None:
        logger.info("Push has no head commit on a branch, nothing to check", ref=payload.ref)
        return EXIT_OK

    try:
        result = asyncio.run(run(context, settings, skip_check=args.skip_check))
    except EnforcementProcessorError as e:
        logger.error("Enforcement failed", error=str(e))
        return EXIT_FAILURE

    logger.info(
        "Enforcement finished",
        outcome=result.outcome.value,
        commit_sha=result.commit_sha,
        issue_url=result.issue.html_url if result.issue else None
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
