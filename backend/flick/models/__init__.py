"""Pydantic models for Flick API."""

from flick.models.notification import (
    MarkReadResponse,
    Notification,
    NotificationListResponse,
    NotificationNotFoundError,
    NotificationType,
    PlayerPush,
    PushDeliveryError,
    PushMessage,
    PushTokenRequest,
    PushTokenResponse,
    UnreadCountResponse,
)
from flick.models.reaction import (
    InvalidReactionError,
    PhotoNotFoundError,
    PlayerAccessError,
    PlayerNotFoundError,
    RateLimitedError,
    ReactionKind,
    Reactions,
    ReactionServiceError,
    ToggleReactionRequest,
    ToggleReactionResponse,
    UserReactionsResponse,
)

__all__ = [
    # Reaction models
    "ReactionKind",
    "Reactions",
    "ToggleReactionRequest",
    "ToggleReactionResponse",
    "UserReactionsResponse",
    "ReactionServiceError",
    "InvalidReactionError",
    "PhotoNotFoundError",
    "PlayerAccessError",
    "PlayerNotFoundError",
    "RateLimitedError",
    # Notification models
    "MarkReadResponse",
    "Notification",
    "NotificationListResponse",
    "NotificationNotFoundError",
    "NotificationType",
    "PlayerPush",
    "PushDeliveryError",
    "PushMessage",
    "PushTokenRequest",
    "PushTokenResponse",
    "UnreadCountResponse",
]
