"""
Webhook Package

This package contains webhook handling components:
- handler: FastAPI route handlers
- security: Webhook signature verification
- processor: Commit check and violation issue filing
"""

from commit_sentinel.webhook.handler import router

__all__ = ["router"]
