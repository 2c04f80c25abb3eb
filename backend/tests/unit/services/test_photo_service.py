"""Unit tests for PhotoService reaction counts."""

from unittest.mock import MagicMock

import pytest

from flick.models.reaction import PhotoNotFoundError, PlayerNotFoundError, ReactionKind
from flick.services.photo_service import PhotoService


def _submission(**reactions) -> dict:
    return {
        "id": "photo-1",
        "player_id": "owner-1",
        "event_id": "event-1",
        "reactions": reactions,
    }


@pytest.fixture
def service(mock_supabase):
    return PhotoService(supabase=mock_supabase)


class TestGetSubmission:
    @pytest.mark.unit
    def test_returns_row(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(data=[_submission(fire=2)])

        assert service.get_submission("photo-1")["player_id"] == "owner-1"
        mock_supabase.table.assert_called_with("submissions")

    @pytest.mark.unit
    def test_missing_raises(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(data=[])

        with pytest.raises(PhotoNotFoundError):
            service.get_submission("nope")

    @pytest.mark.unit
    def test_counts_default_to_zero(self, service, mock_supabase):
        row = _submission()
        row["reactions"] = None
        mock_supabase.execute.return_value = MagicMock(data=[row])

        counts = service.get_reaction_counts("photo-1")

        assert (counts.heart, counts.fire, counts.hundred) == (0, 0, 0)


class TestApplyReaction:
    @pytest.mark.unit
    def test_adding_increments_kind(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(data=[_submission(heart=1, fire=2)])

        counts = service.apply_reaction("photo-1", ReactionKind.FIRE, adding=True)

        assert counts.fire == 3
        assert counts.heart == 1
        mock_supabase.update.assert_called_once_with(
            {"reactions": {"heart": 1, "fire": 3}}
        )

    @pytest.mark.unit
    def test_removing_decrements_kind(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(data=[_submission(hundred=4)])

        counts = service.apply_reaction("photo-1", "hundred", adding=False)

        assert counts.hundred == 3
        assert counts.total == 3

    @pytest.mark.unit
    def test_removing_never_goes_negative(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(data=[_submission()])

        counts = service.apply_reaction("photo-1", "heart", adding=False)

        assert counts.heart == 0

    @pytest.mark.unit
    def test_unknown_photo_raises_without_update(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(data=[])

        with pytest.raises(PhotoNotFoundError):
            service.apply_reaction("nope", "heart", adding=True)
        mock_supabase.update.assert_not_called()


class TestGetPlayer:
    @pytest.mark.unit
    def test_returns_row(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(
            data=[{"id": "player-1", "name": "Ana", "event_id": "event-1", "auth_user_id": "a1"}]
        )

        assert service.get_player("player-1")["name"] == "Ana"
        mock_supabase.table.assert_called_with("players")

    @pytest.mark.unit
    def test_missing_raises(self, service, mock_supabase):
        mock_supabase.execute.return_value = MagicMock(data=[])

        with pytest.raises(PlayerNotFoundError):
            service.get_player("ghost")
