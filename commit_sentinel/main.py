"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.
It sets up all routes and exception handlers.

Design Decisions:
- Use lifespan events for startup/shutdown
- Validate GitHub credentials at startup (fail fast)
- Expose health and readiness endpoints
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from commit_sentinel import __version__
from commit_sentinel.config import get_settings
from commit_sentinel.logging_config import get_logger, setup_logging
from commit_sentinel.webhook import router as webhook_router

setup_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events for the application.
    """
    settings = get_settings()
    logger.info(
        "Starting Commit Sentinel",
        host=settings.host,
        port=settings.port,
        enforced_branch=settings.enforced_branch,
        auth_mode="app" if settings.uses_app_auth else "token",
        dry_run=settings.dry_run
    )

    try:
        settings.validate_credentials()
        logger.info("Configuration validated successfully")
    except ValueError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise

    yield

    logger.info("Shutting down Commit Sentinel")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Commit Sentinel",
        description="Files issues for commits that break the conventional commit format",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )

    app.include_router(webhook_router)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__
            }
        )

    @app.get("/")
    async def root():
        """Root endpoint with basic info."""
        return {
            "name": "Commit Sentinel",
            "version": __version__,
            "status": "running",
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns basic health status for load balancers and monitors.
        """
        return {
            "status": "healthy",
            "service": "commit-sentinel",
            "version": __version__
        }

    @app.get("/ready")
    async def readiness_check():
        """
        Readiness check endpoint.

        Verifies that GitHub credentials are configured.
        """
        try:
            get_settings().validate_credentials()
        except ValueError as e:
            logger.error("Readiness check failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Not ready: {e}"
            )

        return {
            "status": "ready",
            "service": "commit-sentinel"
        }

    return app


app = create_app()
