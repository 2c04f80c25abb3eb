"""
Push delivery through the Expo push endpoint.

Handles:
- Sending a single push to a device token
- Resolving a player's push token from Supabase and notifying them
- Saving a player's push token after device registration
- Sending up to MAX_PUSH_BATCH_SIZE pushes in one request
  (used by event-wide announcement jobs, not by any route in this API)

Delivery is best effort: failures are logged and reported as False,
never raised.
"""

import logging
from typing import Any, Optional

import httpx
from supabase import Client

from flick.core.config import get_settings
from flick.core.constants import MAX_PUSH_BATCH_SIZE, PLAYERS_TABLE
from flick.core.database import get_supabase
from flick.models.notification import PlayerPush, PushDeliveryError, PushMessage

logger = logging.getLogger(__name__)


class PushNotificationService:
    """Service for Expo push notifications."""

    def __init__(
        self,
        supabase: Optional[Client] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._supabase = supabase
        self._http_client = http_client
        self.settings = get_settings()

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    # =========================================================================
    # Public API
    # =========================================================================

    async def send_notification(
        self,
        push_token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Push one message to a device token. Returns True on success."""
        message = PushMessage(to=push_token, title=title, body=body, data=data or {})
        try:
            result = await self._post(message.model_dump())
            ticket = result.get("data")
            if isinstance(ticket, dict) and ticket.get("status") == "error":
                raise PushDeliveryError(ticket.get("message", "unknown push error"))
            logger.info("Push notification sent")
            return True
        except Exception:
            logger.error("Failed to send push notification", exc_info=True)
            return False

    async def notify_player(
        self,
        player_id: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Push to a player by ID. Players without a push token are skipped."""
        try:
            result = (
                self.supabase.table(PLAYERS_TABLE)
                .select("push_token")
                .eq("id", player_id)
                .single()
                .execute()
            )
            push_token = (result.data or {}).get("push_token")
        except Exception:
            logger.error("Failed to look up push token for player %s", player_id, exc_info=True)
            return False

        if not push_token:
            logger.info("Player has no push token: %s", player_id)
            return False

        return await self.send_notification(push_token, title, body, data)

    def save_push_token(self, player_id: str, push_token: str) -> bool:
        """Store the device's push token on the player record. Returns True on success."""
        try:
            self.supabase.table(PLAYERS_TABLE).update({"push_token": push_token}).eq(
                "id", player_id
            ).execute()
        except Exception:
            logger.error("Failed to save push token for player %s", player_id, exc_info=True)
            return False
        logger.info("Push token saved for player: %s", player_id)
        return True

    async def send_batch_notifications(self, notifications: list[PlayerPush]) -> int:
        """
        Push to many players in one request.

        Only the first MAX_PUSH_BATCH_SIZE entries are sent; players
        without a token are skipped. Returns the number of messages sent.
        """
        batch = notifications[:MAX_PUSH_BATCH_SIZE]
        if not batch:
            return 0

        try:
            player_ids = [n.player_id for n in batch]
            result = (
                self.supabase.table(PLAYERS_TABLE)
                .select("id, push_token")
                .in_("id", player_ids)
                .execute()
            )
            tokens = {row["id"]: row.get("push_token") for row in result.data or []}

            messages = [
                PushMessage(
                    to=tokens[n.player_id], title=n.title, body=n.body, data=n.data
                ).model_dump()
                for n in batch
                if tokens.get(n.player_id)
            ]
            if not messages:
                return 0

            await self._post(messages)
            logger.info("Sent %d push notifications", len(messages))
            return len(messages)
        except Exception:
            logger.error("Failed to send batch push notifications", exc_info=True)
            return 0

    # =========================================================================
    # Private Helpers
    # =========================================================================

    async def _post(self, payload: Any) -> dict:
        if self._http_client is not None:
            response = await self._http_client.post(
                self.settings.expo_push_url,
                json=payload,
                timeout=self.settings.push_timeout_seconds,
            )
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.settings.expo_push_url,
                    json=payload,
                    timeout=self.settings.push_timeout_seconds,
                )
        response.raise_for_status()
        return response.json()
