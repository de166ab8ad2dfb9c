import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint for load balancer.

    Returns 503 during graceful shutdown so the balancer stops routing traffic.
    """
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": "interview-core"},
        )
    return {"status": "healthy", "service": "interview-core"}


@router.get("/ready")
async def readiness_check():
    """Readiness check - verifies Redis is reachable."""
    checks = {"redis": False}

    try:
        from interview_core.db.redis import get_redis

        await get_redis().ping()
        checks["redis"] = True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))

    all_healthy = all(checks.values())
    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={"status": "ready" if all_healthy else "degraded", "checks": checks},
    )
