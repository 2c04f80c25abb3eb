"""
Domain errors to JSON responses.

Services raise the exceptions in flick.models; routers let them propagate
and these handlers shape {detail, code}.
"""

import logging
import math
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    detail: str,
    code: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build a standardized error JSON response."""
    content: dict = {"detail": detail}
    if code:
        content["code"] = code
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all domain exception handlers on the FastAPI app."""
    from flick.models.notification import NotificationNotFoundError
    from flick.models.reaction import (
        InvalidReactionError,
        PhotoNotFoundError,
        PlayerAccessError,
        PlayerNotFoundError,
        RateLimitedError,
    )

    # --- Reaction handlers ---

    @app.exception_handler(PhotoNotFoundError)
    async def _photo_not_found(request: Request, exc: PhotoNotFoundError) -> JSONResponse:
        return error_response(404, "Photo not found.", "PHOTO_NOT_FOUND")

    @app.exception_handler(PlayerNotFoundError)
    async def _player_not_found(request: Request, exc: PlayerNotFoundError) -> JSONResponse:
        return error_response(404, "Player not found.", "PLAYER_NOT_FOUND")

    @app.exception_handler(InvalidReactionError)
    async def _invalid_reaction(request: Request, exc: InvalidReactionError) -> JSONResponse:
        return error_response(400, str(exc), "INVALID_REACTION")

    @app.exception_handler(PlayerAccessError)
    async def _player_access(request: Request, exc: PlayerAccessError) -> JSONResponse:
        return error_response(403, "You can only act as your own player.", "PLAYER_ACCESS_DENIED")

    @app.exception_handler(RateLimitedError)
    async def _rate_limited(request: Request, exc: RateLimitedError) -> JSONResponse:
        retry_after = max(1, math.ceil(exc.retry_after_ms / 1000))
        return error_response(
            429,
            f"Too many {exc.action} attempts. Try again in {retry_after}s.",
            "ACTION_RATE_LIMITED",
            headers={"Retry-After": str(retry_after)},
        )

    # --- Notification handlers ---

    @app.exception_handler(NotificationNotFoundError)
    async def _notification_not_found(
        request: Request, exc: NotificationNotFoundError
    ) -> JSONResponse:
        return error_response(404, "Notification not found.", "NOTIFICATION_NOT_FOUND")

    # --- Catch-all ---

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error.", "INTERNAL_ERROR")
