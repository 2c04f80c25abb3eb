"""
Photo reaction models.

A reaction is one of three fixed kinds a player can toggle on a photo
(submission). Aggregate counts live on submissions.reactions; each
player's own toggle history is cached by ReactionToggleStore.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

# ===========================================
# Enums
# ===========================================


class ReactionKind(str, Enum):
    """Kinds of reaction a player can apply to a photo."""

    HEART = "heart"
    FIRE = "fire"
    HUNDRED = "hundred"


# ===========================================
# Domain Models
# ===========================================


class Reactions(BaseModel):
    """Aggregate reaction counts for one photo."""

    model_config = ConfigDict(from_attributes=True)

    heart: int = 0
    fire: int = 0
    hundred: int = 0

    @property
    def total(self) -> int:
        return self.heart + self.fire + self.hundred


# ===========================================
# Request Models
# ===========================================


class ToggleReactionRequest(BaseModel):
    """Toggle one reaction kind on a photo for the acting player."""

    player_id: str
    kind: ReactionKind


# ===========================================
# Response Models
# ===========================================


class ToggleReactionResponse(BaseModel):
    """Result of a toggle: the player's new state plus authoritative counts."""

    photo_id: str
    kind: ReactionKind
    is_active: bool
    reactions: Reactions


class UserReactionsResponse(BaseModel):
    """The acting player's reaction marks, keyed by photo ID."""

    reactions: dict[str, dict[str, bool]]


# ===========================================
# Exceptions
# ===========================================


class ReactionServiceError(Exception):
    """Base exception for reaction errors."""

    pass


class PhotoNotFoundError(ReactionServiceError):
    """Submission (photo) does not exist."""

    pass


class PlayerNotFoundError(ReactionServiceError):
    """Player does not exist."""

    pass


class PlayerAccessError(ReactionServiceError):
    """Caller is not signed in as the player they act for."""

    pass


class RateLimitedError(ReactionServiceError):
    """Client action throttled by a RateLimiter."""

    def __init__(self, action: str, retry_after_ms: float):
        self.action = action
        self.retry_after_ms = retry_after_ms
        super().__init__(f"Too many {action} attempts, retry in {retry_after_ms:.0f}ms")


class InvalidReactionError(ReactionServiceError, ValueError):
    """Reaction kind is not one of heart, fire, hundred."""

    pass
