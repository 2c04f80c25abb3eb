"""
Reaction toggling for players.

Flow for one tap on a reaction button:
1. Throttle the player (RateLimiter "reaction" preset)
2. Flip the player's local mark (ReactionToggleStore) for optimistic state
3. Apply the change to the authoritative counts (PhotoService);
   on failure the local mark is flipped back
4. When a reaction was added to someone else's photo, hand it to
   ReactionNotifier (immediate or batched push)
"""

import logging
from collections import OrderedDict
from typing import Callable, Optional, Union

from flick.core.config import get_settings
from flick.core.posthog import capture
from flick.core.storage import KeyValueStorage, reaction_history_key
from flick.models.reaction import (
    InvalidReactionError,
    PlayerAccessError,
    RateLimitedError,
    ReactionKind,
    ToggleReactionResponse,
)
from flick.services.notification_service import ReactionNotifier
from flick.services.photo_service import PhotoService
from flick.services.rate_limiter import RateLimiter
from flick.services.reaction_store import ReactionMarks, ReactionToggleStore

logger = logging.getLogger(__name__)


class ReactionService:
    """Per-player reaction state plus the authoritative update and notification."""

    def __init__(
        self,
        notifier: ReactionNotifier,
        storage: KeyValueStorage,
        photo_service: Optional[PhotoService] = None,
        storage_prefix: Optional[str] = None,
        clock: Optional[Callable[[], float]] = None,
        max_players: Optional[int] = None,
    ) -> None:
        self.notifier = notifier
        self.photos = photo_service or PhotoService()
        self._storage = storage
        self._storage_prefix = storage_prefix or get_settings().reaction_storage_prefix
        self._clock = clock
        self._max_players = max_players or get_settings().reaction_state_max_players
        # Least recently used player first
        self._stores: OrderedDict[str, ReactionToggleStore] = OrderedDict()
        self._limiters: OrderedDict[str, RateLimiter] = OrderedDict()
        # Evicted stores whose last write has not landed yet
        self._retiring: dict[str, ReactionToggleStore] = {}

    # =========================================================================
    # Public API
    # =========================================================================

    def authorize(self, auth_id: str, player_id: str) -> dict:
        """
        Return the player row if the caller is signed in as that player.

        Raises:
            PlayerNotFoundError: Unknown player
            PlayerAccessError: Player belongs to another auth user
        """
        player = self.photos.get_player(player_id)
        if player.get("auth_user_id") != auth_id:
            raise PlayerAccessError(f"Caller is not player {player_id}")
        return player

    async def toggle_reaction(
        self,
        player_id: str,
        photo_id: str,
        kind: Union[ReactionKind, str],
        reactor_name: Optional[str] = None,
    ) -> ToggleReactionResponse:
        """
        Toggle `kind` on a photo for a player.

        Raises:
            InvalidReactionError: Unknown reaction kind
            RateLimitedError: Player exceeded the reaction preset
            PhotoNotFoundError: Unknown photo
        """
        try:
            kind = ReactionKind(kind)
        except ValueError:
            raise InvalidReactionError(f"Unknown reaction kind: {kind}")

        limiter = self._limiter_for(player_id)
        if not limiter.try_acquire():
            logger.info("Rate limit hit for reactions", extra={"player_id": player_id})
            raise RateLimitedError("reaction", limiter.get_time_until_reset())

        submission = self.photos.get_submission(photo_id)

        store = self._store_for(player_id)
        await store.load()
        is_adding = store.toggle(photo_id, kind)

        try:
            reactions = self.photos.apply_reaction(photo_id, kind, is_adding)
        except Exception:
            store.toggle(photo_id, kind)
            logger.error(
                "Failed to apply reaction, reverted local state",
                extra={"player_id": player_id, "photo_id": photo_id},
            )
            raise

        owner_id = submission["player_id"]
        if is_adding and owner_id != player_id:
            if reactor_name is None:
                reactor_name = self.photos.get_player(player_id)["name"]
            self.notifier.notify_reaction(owner_id, reactor_name, kind, photo_id)

        capture(
            player_id,
            "reaction_toggled",
            {"photo_id": photo_id, "kind": kind.value, "is_active": is_adding},
            event_id=submission.get("event_id"),
        )

        return ToggleReactionResponse(
            photo_id=photo_id,
            kind=kind,
            is_active=is_adding,
            reactions=reactions,
        )

    async def has_reacted(
        self, player_id: str, photo_id: str, kind: Union[ReactionKind, str]
    ) -> bool:
        store = self._store_for(player_id)
        await store.load()
        return store.has_reacted(photo_id, kind)

    async def get_user_reactions(self, player_id: str) -> ReactionMarks:
        return await self._store_for(player_id).get_user_reactions()

    async def flush(self) -> None:
        """Wait for pending reaction-history writes of every player."""
        for store in [*self._stores.values(), *self._retiring.values()]:
            await store.flush()
        self._retiring.clear()

    # =========================================================================
    # Private Helpers
    # =========================================================================

    def _store_for(self, player_id: str) -> ReactionToggleStore:
        store = self._stores.get(player_id)
        if store is not None:
            self._stores.move_to_end(player_id)
            return store

        # A retiring store still owns the newest marks until its write lands
        store = self._retiring.pop(player_id, None) or ReactionToggleStore(
            self._storage, reaction_history_key(self._storage_prefix, player_id)
        )
        self._stores[player_id] = store
        if len(self._stores) > self._max_players:
            evicted_id, evicted = self._stores.popitem(last=False)
            self._retiring = {
                pid: s for pid, s in self._retiring.items() if s.has_pending_writes
            }
            if evicted.has_pending_writes:
                self._retiring[evicted_id] = evicted
        return store

    def _limiter_for(self, player_id: str) -> RateLimiter:
        limiter = self._limiters.get(player_id)
        if limiter is not None:
            self._limiters.move_to_end(player_id)
            return limiter

        # An evicted player starts a fresh window
        limiter = RateLimiter.create("reaction", clock=self._clock)
        self._limiters[player_id] = limiter
        if len(self._limiters) > self._max_players:
            self._limiters.popitem(last=False)
        return limiter
