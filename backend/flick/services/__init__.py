"""Business logic services for Flick API."""

from flick.services.reaction_batching import ReactionBatchingScheduler
from flick.services.reaction_service import ReactionService
from flick.services.reaction_store import ReactionToggleStore

__all__ = [
    "ReactionBatchingScheduler",
    "ReactionService",
    "ReactionToggleStore",
]
