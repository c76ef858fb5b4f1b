# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# /health        process is up and configured
# /health/live   process is alive (no dependencies touched)
# /health/ready  database reachable and every image bucket provisioned
#
# The geocoder is deliberately not probed: each probe would spend quota.
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.config import settings
from app.dependencies import ObjectStoreDep, SupabaseDep

router = APIRouter()

API_VERSION = "1.0.0"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    version: str


class DependencyChecks(BaseModel):
    """Outcome per dependency: "healthy" or "unhealthy: <reason>"."""
    database: str = "unknown"
    storage: str = "unknown"
    missing_buckets: list[str] = Field(default_factory=list)


class ReadinessResponse(BaseModel):
    status: str
    checks: DependencyChecks
    timestamp: str


class LivenessResponse(BaseModel):
    status: str
    timestamp: str


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Report the running environment and API version."""
    return HealthResponse(
        status="healthy",
        timestamp=_utc_now(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
def readiness_check(supabase: SupabaseDep, store: ObjectStoreDep):
    """
    Check the locations table and the image buckets.

    A bucket that failed to provision at startup makes the service
    "degraded": reads keep working, uploads to that bucket fail.
    """
    checks = DependencyChecks()

    try:
        supabase.count_locations()
        checks.database = "healthy"
    except Exception as e:
        checks.database = f"unhealthy: {str(e)[:50]}"

    expected = {policy.name for policy in store.config.buckets.values()}
    checks.missing_buckets = sorted(expected - store.provisioned_buckets)
    if checks.missing_buckets:
        checks.storage = f"unhealthy: buckets not provisioned: {', '.join(checks.missing_buckets)}"
    else:
        checks.storage = "healthy"

    ready = checks.database == "healthy" and checks.storage == "healthy"

    return ReadinessResponse(
        status="ready" if ready else "degraded",
        checks=checks,
        timestamp=_utc_now(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    """Process liveness only."""
    return LivenessResponse(status="alive", timestamp=_utc_now())
