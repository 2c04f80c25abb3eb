"""
In-app notification API endpoints.

Handles:
- GET / - List the player's notifications (newest first)
- GET /unread-count - Number of unread notifications
- PUT /read-all - Mark every notification as read
- PUT /push-token - Register the device's Expo push token
- PUT /{notification_id}/read - Mark one notification as read
- DELETE /{notification_id} - Delete one notification
"""

from fastapi import APIRouter, Depends, Query, Request

from flick.core.auth import AuthUser, require_auth_from_state
from flick.core.rate_limit import POLL_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from flick.models.notification import (
    MarkReadResponse,
    NotificationListResponse,
    PushTokenRequest,
    PushTokenResponse,
    UnreadCountResponse,
)
from flick.models.reaction import PlayerAccessError
from flick.routers.reactions import get_reaction_service
from flick.services.notification_service import NotificationService
from flick.services.push_service import PushNotificationService
from flick.services.reaction_service import ReactionService

router = APIRouter()


def get_notification_service() -> NotificationService:
    """Dependency to get NotificationService instance."""
    return NotificationService()


def get_push_service() -> PushNotificationService:
    return PushNotificationService()


def _require_owner(
    notification_service: NotificationService, notification_id: str, player_id: str
) -> None:
    if notification_service.get_owner(notification_id) != player_id:
        raise PlayerAccessError(f"Notification {notification_id} belongs to another player")


# =============================================================================
# Static Routes (MUST come before parameterized routes)
# =============================================================================


@router.get("/", response_model=NotificationListResponse)
@limiter.limit(READ_LIMIT)
async def list_notifications(
    request: Request,
    player_id: str = Query(...),
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    reaction_service.authorize(user.auth_id, player_id)
    return NotificationListResponse(notifications=notification_service.get_all(player_id))


@router.get("/unread-count", response_model=UnreadCountResponse)
@limiter.limit(POLL_LIMIT)
async def get_unread_count(
    request: Request,
    player_id: str = Query(...),
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    reaction_service.authorize(user.auth_id, player_id)
    return UnreadCountResponse(count=notification_service.get_unread_count(player_id))


@router.put("/read-all", response_model=MarkReadResponse)
@limiter.limit(WRITE_LIMIT)
async def mark_all_read(
    request: Request,
    player_id: str = Query(...),
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> MarkReadResponse:
    reaction_service.authorize(user.auth_id, player_id)
    notification_service.mark_all_as_read(player_id)
    return MarkReadResponse()


@router.put("/push-token", response_model=PushTokenResponse)
@limiter.limit(WRITE_LIMIT)
async def register_push_token(
    request: Request,
    body: PushTokenRequest,
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
    push_service: PushNotificationService = Depends(get_push_service),
) -> PushTokenResponse:
    reaction_service.authorize(user.auth_id, body.player_id)
    saved = push_service.save_push_token(body.player_id, body.push_token)
    return PushTokenResponse(saved=saved)


# =============================================================================
# Parameterized Routes
# =============================================================================


@router.put("/{notification_id}/read", response_model=MarkReadResponse)
@limiter.limit(WRITE_LIMIT)
async def mark_read(
    request: Request,
    notification_id: str,
    player_id: str = Query(...),
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> MarkReadResponse:
    reaction_service.authorize(user.auth_id, player_id)
    _require_owner(notification_service, notification_id, player_id)
    notification_service.mark_as_read(notification_id)
    return MarkReadResponse()


@router.delete("/{notification_id}", response_model=MarkReadResponse)
@limiter.limit(WRITE_LIMIT)
async def delete_notification(
    request: Request,
    notification_id: str,
    player_id: str = Query(...),
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> MarkReadResponse:
    reaction_service.authorize(user.auth_id, player_id)
    _require_owner(notification_service, notification_id, player_id)
    notification_service.delete(notification_id)
    return MarkReadResponse()
