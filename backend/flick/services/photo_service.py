"""
Authoritative reaction counts on photo submissions.

Counts live in the submissions.reactions JSON column
({"heart": n, "fire": n, "hundred": n}); updates are a plain
read-modify-write, so concurrent reactions on the same photo can lose an
increment. The real-time feed corrects clients on the next change.
"""

import logging
from typing import Optional, Union

from supabase import Client

from flick.core.constants import PLAYERS_TABLE, SUBMISSIONS_TABLE
from flick.core.database import get_supabase
from flick.models.reaction import (
    PhotoNotFoundError,
    PlayerNotFoundError,
    ReactionKind,
    Reactions,
)

logger = logging.getLogger(__name__)


class PhotoService:
    """Service for submissions and their reaction counts."""

    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def get_submission(self, photo_id: str) -> dict:
        """
        Fetch a submission row.

        Raises:
            PhotoNotFoundError: No submission with that ID
        """
        result = (
            self.supabase.table(SUBMISSIONS_TABLE)
            .select("id, player_id, event_id, reactions")
            .eq("id", photo_id)
            .execute()
        )
        if not result.data:
            raise PhotoNotFoundError(f"Photo {photo_id} not found")
        return result.data[0]

    def get_reaction_counts(self, photo_id: str) -> Reactions:
        submission = self.get_submission(photo_id)
        return Reactions(**(submission.get("reactions") or {}))

    def apply_reaction(
        self,
        photo_id: str,
        kind: Union[ReactionKind, str],
        adding: bool,
    ) -> Reactions:
        """Add or remove one reaction of `kind` and return the new counts (never below 0)."""
        key = ReactionKind(kind).value
        submission = self.get_submission(photo_id)

        counts = dict(submission.get("reactions") or {})
        current = counts.get(key, 0)
        counts[key] = current + 1 if adding else max(0, current - 1)

        self.supabase.table(SUBMISSIONS_TABLE).update({"reactions": counts}).eq(
            "id", photo_id
        ).execute()

        logger.debug(
            "Reaction %s %s on photo %s",
            key,
            "added" if adding else "removed",
            photo_id,
            extra={"photo_id": photo_id},
        )
        return Reactions(**counts)

    def get_player(self, player_id: str) -> dict:
        """
        Fetch a player row.

        Raises:
            PlayerNotFoundError: No player with that ID
        """
        result = (
            self.supabase.table(PLAYERS_TABLE)
            .select("id, name, event_id, auth_user_id")
            .eq("id", player_id)
            .execute()
        )
        if not result.data:
            raise PlayerNotFoundError(f"Player {player_id} not found")
        return result.data[0]
