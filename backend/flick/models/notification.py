"""
In-app notification and push message models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from flick.core.constants import PUSH_PRIORITY, PUSH_SOUND


class NotificationType(str, Enum):
    """Kinds of in-app notification."""

    REACTION = "reaction"
    NEW_PHOTO = "new_photo"
    RANK_CHANGE = "rank_change"
    WINNER = "winner"


class Notification(BaseModel):
    """A row in the notifications table."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    player_id: str
    type: NotificationType
    message: str
    photo_id: Optional[str] = None
    read: bool = False
    created_at: datetime


class PushMessage(BaseModel):
    """Body accepted by the Expo push endpoint."""

    to: str
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    sound: str = PUSH_SOUND
    priority: str = PUSH_PRIORITY


class PlayerPush(BaseModel):
    """A push addressed by player ID (token resolved at send time)."""

    player_id: str
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)


# ===========================================
# Request Models
# ===========================================


class PushTokenRequest(BaseModel):
    """Expo push token reported by a player's device after permission is granted."""

    player_id: str
    push_token: str = Field(..., min_length=1)


# ===========================================
# Response Models
# ===========================================


class NotificationListResponse(BaseModel):
    notifications: list[Notification]


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    success: bool = True


class PushTokenResponse(BaseModel):
    saved: bool


# ===========================================
# Exceptions
# ===========================================


class NotificationNotFoundError(Exception):
    """Notification does not exist."""

    pass


class PushDeliveryError(Exception):
    """The push endpoint rejected a message."""

    pass
