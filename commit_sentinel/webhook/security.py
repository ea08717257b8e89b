"""
Webhook Security Module

Authenticates push deliveries before anything in them is trusted.
GitHub signs every delivery with the shared webhook secret; a delivery
whose HMAC does not match is rejected with 401 and never parsed.

Design Decisions:
- Compare digests in constant time
- Prefer X-Hub-Signature-256 and accept the legacy SHA-1 header
- Refuse every delivery while no secret is configured
"""

import hashlib
import hmac
from typing import Optional, Tuple

from fastapi import HTTPException, Request, status

from commit_sentinel.config import get_settings
from commit_sentinel.logging_config import get_logger

logger = get_logger(__name__)

PROCESSED_EVENT_TYPES = {"push"}

# Checked in order; the first header present wins
SIGNATURE_HEADERS = (
    ("X-Hub-Signature-256", "sha256"),
    ("X-Hub-Signature", "sha1"),
)


def compute_signature(secret: str, body: bytes, algorithm: str = "sha256") -> str:
    """Compute the hex HMAC GitHub would send for a body."""
    hash_func = hashlib.sha256 if algorithm == "sha256" else hashlib.sha1
    return hmac.new(secret.encode(), body, hash_func).hexdigest()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _signature_header(request: Request) -> Optional[Tuple[str, str]]:
    for header, algorithm in SIGNATURE_HEADERS:
        value = request.headers.get(header)
        if value:
            return value, algorithm
    return None


async def verify_webhook_signature(
    request: Request,
    raw_body: bytes
) -> bool:
    """
    Check that a delivery was signed with our webhook secret.

    The header value has the form "<algorithm>=<hexdigest>" and the
    algorithm must match the header it arrived in.

    Raises:
        HTTPException: 401 if the secret is unset or the signature is
            missing, malformed, or wrong
    """
    settings = get_settings()
    remote_addr = request.client.host if request.client else "unknown"

    if not settings.github_webhook_secret:
        logger.error("Webhook secret is not configured, rejecting delivery")
        raise _unauthorized("Webhook signature cannot be verified")

    found = _signature_header(request)
    if found is None:
        logger.warning("Delivery has no signature header", remote_addr=remote_addr)
        raise _unauthorized("Missing webhook signature")
    signature_header, algorithm = found

    prefix, sep, signature = signature_header.partition("=")
    if not sep or prefix != algorithm:
        logger.warning(
            "Invalid signature format",
            signature_header=signature_header[:50],
            expected_algorithm=algorithm
        )
        raise _unauthorized("Invalid signature format")

    expected = compute_signature(settings.github_webhook_secret, raw_body, algorithm)
    if not hmac.compare_digest(signature, expected):
        logger.warning(
            "Webhook signature mismatch",
            remote_addr=remote_addr,
            algorithm=algorithm
        )
        raise _unauthorized("Invalid webhook signature")

    logger.debug("Webhook signature verified", algorithm=algorithm)
    return True


def validate_webhook_event(event_type: Optional[str]) -> bool:
    """
    Decide whether a delivery's event type is enforced.

    Returns False for anything but push, including the ping sent when
    the hook is created.

    Raises:
        HTTPException: 400 if the X-GitHub-Event header is missing
    """
    if not event_type:
        logger.debug("Missing event type header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing X-GitHub-Event header"
        )

    if event_type not in PROCESSED_EVENT_TYPES:
        logger.debug("Ignoring non-push event", event_type=event_type)
        return False

    return True


def extract_delivery_id(request: Request) -> Optional[str]:
    """GitHub's unique ID for this delivery, used to correlate logs."""
    return request.headers.get("X-GitHub-Delivery")
