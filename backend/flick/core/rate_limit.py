"""
Per-route HTTP limits (slowapi, counters in Redis).

This is the coarse abuse guard shared by all workers. The per-player
action throttle that decides whether a reaction is accepted at all is
flick.services.rate_limiter.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from flick.core.config import get_settings

DEFAULT_LIMIT = "120/minute"
READ_LIMIT = "60/minute"
POLL_LIMIT = "120/minute"
WRITE_LIMIT = "30/minute"
REACTION_TOGGLE_LIMIT = "60/minute"


def _get_rate_limit_key(request: Request) -> str:
    """Bucket by authenticated caller where possible, else by client IP."""
    auth_id = getattr(getattr(request.state, "user", None), "auth_id", None)
    if auth_id:
        return f"auth:{auth_id}"

    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


_settings = get_settings()

limiter = Limiter(
    key_func=_get_rate_limit_key,
    default_limits=[DEFAULT_LIMIT],
    enabled=_settings.rate_limit_enabled,
    storage_uri=_settings.redis_url,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please try again later.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
    )
