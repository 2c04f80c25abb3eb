"""
In-app notifications and the push fan-out built on them.

Handles:
- CRUD on the notifications table (create, list, unread count, mark read, delete)
- NotificationDispatchFacade: durable in-app record first, then best-effort push
- ReactionNotifier: reaction / rank change / winner notifications, with
  reaction pushes routed through ReactionBatchingScheduler

This API only triggers reaction notifications. notify_rank_change and
notify_winner are called by the leaderboard and event-closing workers that
share this package; they have no HTTP route here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from supabase import Client

from flick.core.constants import (
    IMMEDIATE_REACTION_TITLE,
    NOTIFICATIONS_TABLE,
    RANK_CHANGE_TITLE,
    REACTION_EMOJI,
    WINNER_TITLE,
)
from flick.core.database import get_supabase
from flick.models.notification import Notification, NotificationNotFoundError, NotificationType
from flick.models.reaction import ReactionKind
from flick.services.push_service import PushNotificationService
from flick.services.reaction_batching import ReactionBatchingScheduler, format_batched_message

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for the notifications table."""

    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def create(
        self,
        player_id: str,
        type: NotificationType,
        message: str,
        photo_id: Optional[str] = None,
    ) -> Notification:
        """Insert an unread, timestamped notification and return it."""
        result = (
            self.supabase.table(NOTIFICATIONS_TABLE)
            .insert(
                {
                    "player_id": player_id,
                    "type": NotificationType(type).value,
                    "message": message,
                    "photo_id": photo_id,
                    "read": False,
                    "created_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .execute()
        )
        notification = Notification(**result.data[0])
        logger.info(
            "Notification created: %s", notification.id, extra={"player_id": player_id}
        )
        return notification

    def get_all(self, player_id: str) -> list[Notification]:
        """All notifications for a player, newest first."""
        result = (
            self.supabase.table(NOTIFICATIONS_TABLE)
            .select("*")
            .eq("player_id", player_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Notification(**row) for row in result.data or []]

    def get_unread_count(self, player_id: str) -> int:
        result = (
            self.supabase.table(NOTIFICATIONS_TABLE)
            .select("id", count="exact")
            .eq("player_id", player_id)
            .eq("read", False)
            .execute()
        )
        return result.count or 0

    def mark_as_read(self, notification_id: str) -> None:
        result = (
            self.supabase.table(NOTIFICATIONS_TABLE)
            .update({"read": True})
            .eq("id", notification_id)
            .execute()
        )
        if not result.data:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")

    def mark_all_as_read(self, player_id: str) -> None:
        self.supabase.table(NOTIFICATIONS_TABLE).update({"read": True}).eq(
            "player_id", player_id
        ).eq("read", False).execute()
        logger.info("All notifications marked as read", extra={"player_id": player_id})

    def delete(self, notification_id: str) -> None:
        result = (
            self.supabase.table(NOTIFICATIONS_TABLE).delete().eq("id", notification_id).execute()
        )
        if not result.data:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")

    def get_owner(self, notification_id: str) -> str:
        """Player ID a notification belongs to."""
        result = (
            self.supabase.table(NOTIFICATIONS_TABLE)
            .select("player_id")
            .eq("id", notification_id)
            .execute()
        )
        if not result.data:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        return result.data[0]["player_id"]


class NotificationDispatchFacade:
    """
    Record-then-push delivery used by every notification path.

    The in-app record is the durable part: it is written before returning
    and its errors propagate. The push after it is best effort and never
    raises.
    """

    def __init__(
        self,
        notifications: NotificationService,
        push: PushNotificationService,
    ) -> None:
        self.notifications = notifications
        self.push = push

    async def immediate(
        self,
        recipient_id: str,
        title: str,
        body: str,
        metadata: dict[str, Any],
    ) -> Notification:
        """Record and push a single event right away."""
        return await self._deliver(recipient_id, title, body, metadata)

    async def batched(
        self,
        recipient_id: str,
        title: str,
        body: str,
        metadata: dict[str, Any],
    ) -> Notification:
        """Record and push an aggregated summary at the end of a batch window."""
        return await self._deliver(recipient_id, title, body, metadata)

    async def _deliver(
        self,
        recipient_id: str,
        title: str,
        body: str,
        metadata: dict[str, Any],
    ) -> Notification:
        notification = self.notifications.create(
            recipient_id,
            NotificationType(metadata.get("type", NotificationType.REACTION.value)),
            body,
            metadata.get("photoId"),
        )
        await self.push.notify_player(recipient_id, title, body, metadata)
        return notification


class ReactionNotifier:
    """Builds notification copy and chooses immediate or batched delivery."""

    def __init__(
        self,
        facade: NotificationDispatchFacade,
        scheduler: ReactionBatchingScheduler,
    ) -> None:
        self.facade = facade
        self.scheduler = scheduler

    def notify_reaction(
        self,
        player_id: str,
        reactor_name: str,
        kind: Union[ReactionKind, str],
        photo_id: str,
    ) -> None:
        """
        Notify a photo owner that someone reacted.

        The first reaction on a photo is delivered at once; later ones are
        summarized when the batch window closes. Does not filter
        self-reactions.
        """
        emoji = REACTION_EMOJI[ReactionKind(kind).value]
        message = f"{reactor_name} reacted {emoji} to your photo"

        async def send_immediate() -> None:
            await self.facade.immediate(
                player_id,
                IMMEDIATE_REACTION_TITLE,
                message,
                {"type": NotificationType.REACTION.value, "photoId": photo_id},
            )

        async def send_batched(count: int, names: list[str]) -> None:
            title, body = format_batched_message(count, names)
            await self.facade.batched(
                player_id,
                title,
                body,
                {"type": NotificationType.REACTION.value, "photoId": photo_id, "count": count},
            )

        self.scheduler.queue_reaction(
            photo_id, player_id, reactor_name, send_immediate, send_batched
        )

    async def notify_rank_change(self, player_id: str, new_rank: int) -> Notification:
        message = f"🚀 You moved up to #{new_rank}!"
        return await self.facade.immediate(
            player_id,
            RANK_CHANGE_TITLE,
            message,
            {"type": NotificationType.RANK_CHANGE.value, "newRank": new_rank},
        )

    async def notify_winner(self, player_id: str, event_title: str) -> Notification:
        message = f'🏆 You won "{event_title}"! Congratulations!'
        return await self.facade.immediate(
            player_id,
            WINNER_TITLE,
            message,
            {"type": NotificationType.WINNER.value, "eventTitle": event_title},
        )
