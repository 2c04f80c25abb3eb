from fastapi import APIRouter, Request

from flick.core.redis import get_redis

router = APIRouter()

SERVICE_NAME = "flick-api"


@router.get("/")
async def root():
    return {"message": "Welcome to Flick API", "docs": "/docs"}


@router.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/health/redis")
async def redis_health_check():
    try:
        await get_redis().ping()
    except Exception as e:
        return {"status": "unhealthy", "service": "redis", "error": str(e)}
    return {"status": "healthy", "service": "redis"}


@router.get("/health/reactions")
async def reactions_health_check(request: Request):
    """Reactions waiting in this worker's open batch windows."""
    service = getattr(request.app.state, "reaction_service", None)
    if service is None:
        return {"status": "starting", "service": "reactions"}
    return {
        "status": "healthy",
        "service": "reactions",
        "pending_reactions": service.notifier.scheduler.get_pending_count(),
    }
