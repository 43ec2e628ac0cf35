# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# /health        process is up (load balancer)
# /health/ready  data store and media bucket reachable, email configured
# /health/live   process is alive (container restarts)
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from app.dependencies import RepositoryDep
from lib.repository import RepositoryError

router = APIRouter()

VERSION = "1.0.0"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    version: str


class ChecksResponse(BaseModel):
    """
    Per-dependency status.

    `email` is informational: without a Resend key the API still works,
    notifications are just recorded instead of sent.
    """
    database: str
    storage: str
    email: str


class ReadinessResponse(BaseModel):
    status: str
    checks: ChecksResponse
    timestamp: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_media_bucket() -> str:
    if settings.USE_IN_MEMORY_BACKENDS:
        return "healthy"

    from lib.supabase_client import SupabaseClient

    try:
        SupabaseClient.get_client().storage.get_bucket(settings.MEDIA_BUCKET)
        return "healthy"
    except Exception as e:
        return f"unhealthy: {str(e)[:50]}"


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="healthy",
        timestamp=_now(),
        environment=settings.ENVIRONMENT,
        version=VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(repo: RepositoryDep):
    """Ready when the data store answers and the media bucket exists."""
    try:
        repo.find_many("profiles", columns="id", limit=1)
        database = "healthy"
    except RepositoryError as e:
        database = f"unhealthy: {str(e)[:50]}"

    checks = ChecksResponse(
        database=database,
        storage=_check_media_bucket(),
        email="configured" if settings.email_enabled else "disabled",
    )
    ready = checks.database == "healthy" and checks.storage == "healthy"

    return ReadinessResponse(
        status="ready" if ready else "degraded",
        checks=checks,
        timestamp=_now(),
    )


@router.get("/health/live")
async def liveness_check():
    return {"status": "alive", "timestamp": _now()}
