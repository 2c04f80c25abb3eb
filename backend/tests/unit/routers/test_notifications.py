"""Unit tests for notifications router endpoints.

Tests:
- list_notifications(), get_unread_count(), mark_all_read()
- mark_read() / delete_notification() - ownership check
- register_push_token() - saves the token for the caller's own player
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import Request

from flick.core.auth import AuthUser
from flick.models.notification import Notification, PushTokenRequest
from flick.models.reaction import PlayerAccessError
from flick.routers.notifications import (
    delete_notification,
    get_unread_count,
    list_notifications,
    mark_all_read,
    mark_read,
    register_push_token,
)

USER = AuthUser(auth_id="auth-1")


@pytest.fixture
def request_mock():
    return MagicMock(spec=Request)


@pytest.fixture
def reaction_service():
    service = MagicMock()
    service.authorize.return_value = {"id": "player-1", "auth_user_id": "auth-1"}
    return service


@pytest.fixture
def notification_service():
    service = MagicMock()
    service.get_owner.return_value = "player-1"
    return service


@pytest.fixture
def deps(request_mock, reaction_service, notification_service):
    return {
        "request": request_mock,
        "user": USER,
        "reaction_service": reaction_service,
        "notification_service": notification_service,
    }


class TestListing:
    @pytest.mark.unit
    async def test_list_notifications(self, deps, notification_service, reaction_service):
        notification_service.get_all.return_value = [
            Notification(
                id="n1",
                player_id="player-1",
                type="reaction",
                message="Ana reacted 🔥 to your photo",
                photo_id="photo-1",
                created_at=datetime(2026, 3, 14, tzinfo=timezone.utc),
            )
        ]

        result = await list_notifications(player_id="player-1", **deps)

        assert [n.id for n in result.notifications] == ["n1"]
        reaction_service.authorize.assert_called_once_with("auth-1", "player-1")

    @pytest.mark.unit
    async def test_unread_count(self, deps, notification_service):
        notification_service.get_unread_count.return_value = 2

        result = await get_unread_count(player_id="player-1", **deps)

        assert result.count == 2

    @pytest.mark.unit
    async def test_mark_all_read(self, deps, notification_service):
        result = await mark_all_read(player_id="player-1", **deps)

        assert result.success is True
        notification_service.mark_all_as_read.assert_called_once_with("player-1")

    @pytest.mark.unit
    async def test_listing_requires_own_player(self, deps, reaction_service, notification_service):
        reaction_service.authorize.side_effect = PlayerAccessError("nope")

        with pytest.raises(PlayerAccessError):
            await list_notifications(player_id="player-2", **deps)

        notification_service.get_all.assert_not_called()


class TestSingleNotification:
    @pytest.mark.unit
    async def test_mark_read(self, deps, notification_service):
        result = await mark_read(notification_id="n1", player_id="player-1", **deps)

        assert result.success is True
        notification_service.mark_as_read.assert_called_once_with("n1")

    @pytest.mark.unit
    async def test_mark_read_other_players_notification(self, deps, notification_service):
        notification_service.get_owner.return_value = "player-2"

        with pytest.raises(PlayerAccessError):
            await mark_read(notification_id="n1", player_id="player-1", **deps)

        notification_service.mark_as_read.assert_not_called()

    @pytest.mark.unit
    async def test_delete(self, deps, notification_service):
        result = await delete_notification(notification_id="n1", player_id="player-1", **deps)

        assert result.success is True
        notification_service.delete.assert_called_once_with("n1")

    @pytest.mark.unit
    async def test_delete_other_players_notification(self, deps, notification_service):
        notification_service.get_owner.return_value = "player-2"

        with pytest.raises(PlayerAccessError):
            await delete_notification(notification_id="n1", player_id="player-1", **deps)

        notification_service.delete.assert_not_called()


class TestPushToken:
    @pytest.fixture
    def push_service(self):
        service = MagicMock()
        service.save_push_token.return_value = True
        return service

    @pytest.fixture
    def token_deps(self, request_mock, reaction_service, push_service):
        return {
            "request": request_mock,
            "user": USER,
            "reaction_service": reaction_service,
            "push_service": push_service,
        }

    @pytest.mark.unit
    async def test_saves_token_for_own_player(self, token_deps, reaction_service, push_service):
        body = PushTokenRequest(player_id="player-1", push_token="ExponentPushToken[abc]")

        result = await register_push_token(body=body, **token_deps)

        assert result.saved is True
        reaction_service.authorize.assert_called_once_with("auth-1", "player-1")
        push_service.save_push_token.assert_called_once_with(
            "player-1", "ExponentPushToken[abc]"
        )

    @pytest.mark.unit
    async def test_reports_failed_save(self, token_deps, push_service):
        push_service.save_push_token.return_value = False
        body = PushTokenRequest(player_id="player-1", push_token="ExponentPushToken[abc]")

        result = await register_push_token(body=body, **token_deps)

        assert result.saved is False

    @pytest.mark.unit
    async def test_other_players_token_is_rejected(
        self, token_deps, reaction_service, push_service
    ):
        reaction_service.authorize.side_effect = PlayerAccessError("nope")
        body = PushTokenRequest(player_id="player-2", push_token="ExponentPushToken[abc]")

        with pytest.raises(PlayerAccessError):
            await register_push_token(body=body, **token_deps)

        push_service.save_push_token.assert_not_called()
