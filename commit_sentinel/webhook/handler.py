"""
Webhook Handler Module

This module defines the FastAPI endpoints for handling GitHub webhooks.
It implements the webhook endpoint with proper security, validation,
and background task processing.

Design Decisions:
- Return 200 OK immediately after validation (GitHub timeout handling)
- Offload the check and issue filing to background tasks
- Ignore pushes that cannot carry a violation (tags, deletions, other branches)
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status
from pydantic import ValidationError

from commit_sentinel.config import get_settings
from commit_sentinel.logging_config import get_logger
from commit_sentinel.models import PushContext, PushWebhookPayload
from commit_sentinel.webhook.processor import process_push
from commit_sentinel.webhook.security import (
    extract_delivery_id,
    validate_webhook_event,
    verify_webhook_signature,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


def _ignored(reason: str, delivery_id: Optional[str]) -> Dict[str, Any]:
    return {"status": "ignored", "reason": reason, "delivery_id": delivery_id}


@router.post("/github", status_code=status.HTTP_200_OK)
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks
) -> Dict[str, Any]:
    """
    GitHub webhook endpoint.

    Receives push events, validates the signature and payload, and
    queues enforcement for pushes to the enforced branch.

    Args:
        request: FastAPI request object
        background_tasks: FastAPI background tasks

    Returns:
        JSON response with status and delivery ID

    Raises:
        HTTPException: On validation or security failures
    """
    settings = get_settings()
    delivery_id = extract_delivery_id(request)

    logger.info(
        "Received GitHub webhook",
        delivery_id=delivery_id,
        remote_addr=request.client.host if request.client else "unknown"
    )

    raw_body = await request.body()

    # Signature first: nothing else is trusted before this passes
    await verify_webhook_signature(request, raw_body)

    event_type = request.headers.get("X-GitHub-Event")
    if not validate_webhook_event(event_type):
        return _ignored(f"Event type '{event_type}' not processed", delivery_id)

    try:
        payload_dict = await request.json() if raw_body else {}
    except ValueError as e:
        logger.error("Failed to parse webhook payload", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload"
        )

    try:
        payload = PushWebhookPayload.model_validate(payload_dict)
    except ValidationError as e:
        logger.error(
            "Invalid webhook payload",
            error=str(e),
            delivery_id=delivery_id
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid payload: {e}"
        )

    if payload.branch is None:
        return _ignored(f"Ref '{payload.ref}' is not a branch", delivery_id)

    if payload.branch != settings.enforced_branch:
        logger.debug(
            "Ignoring push to unenforced branch",
            branch=payload.branch,
            enforced_branch=settings.enforced_branch
        )
        return _ignored(f"Branch '{payload.branch}' is not enforced", delivery_id)

    if payload.deleted or payload.head_commit is None:
        return _ignored("Push has no head commit", delivery_id)

    context = PushContext.from_payload(payload, delivery_id)

    logger.info(
        "Queueing commit check",
        repo=context.full_repo_name,
        branch=context.branch,
        commit_sha=context.head_commit.id,
        delivery_id=delivery_id
    )

    background_tasks.add_task(_process_push_with_error_handling, context)

    return {
        "status": "queued",
        "message": "Commit check has been queued for processing",
        "delivery_id": delivery_id,
        "commit": {
            "owner": context.owner,
            "repo": context.repo,
            "sha": context.head_commit.id
        }
    }


async def _process_push_with_error_handling(context: PushContext) -> None:
    """
    Run enforcement, logging failures instead of raising.

    Background task errors would otherwise only reach the ASGI server log.
    """
    task_id = f"{context.full_repo_name}@{context.head_commit.short_sha}"

    try:
        result = await process_push(context)
        logger.info(
            "Commit check completed",
            task_id=task_id,
            delivery_id=context.delivery_id,
            outcome=result.outcome.value,
            issue_number=result.issue.number if result.issue else None
        )
    except Exception as e:
        logger.error(
            "Commit check failed",
            task_id=task_id,
            delivery_id=context.delivery_id,
            error=str(e),
            error_type=type(e).__name__
        )


@router.get("/health")
async def webhook_health() -> Dict[str, str]:
    """
    Health check endpoint for the webhook service.

    Returns:
        Simple health status
    """
    return {"status": "healthy", "service": "webhook"}
