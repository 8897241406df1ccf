"""Health check endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from teamup_api.auth.github import GitHubOAuth
from teamup_api.config import settings
from teamup_api.services.verification_service import get_github_oauth

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness check - verifies the service is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    oauth: Annotated[GitHubOAuth, Depends(get_github_oauth)],
) -> dict[str, Any]:
    """Readiness check - reports which optional collaborators are configured."""
    return {
        "status": "ready",
        "environment": settings.ENVIRONMENT,
        "checks": {
            "github_oauth": "configured" if oauth.configured else "not_configured",
            "ocr": "configured" if settings.OCR_SERVICE_URL else "disabled",
        },
    }
