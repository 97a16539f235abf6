"""Tests for champion availability across series modes."""

import pytest

from live_draft.models.draft import (
    NONE_CHAMPION,
    DraftMode,
    DraftSide,
    GameStatus,
    TeamSide,
    UnavailableReason,
)
from live_draft.models.session import LiveDraftGame, UnavailableChampion
from live_draft.services.champion_availability import (
    UnavailableIndex,
    is_champion_unavailable,
    unavailable_champions,
)


def _game(**kwargs) -> LiveDraftGame:
    return LiveDraftGame(id="g2", session_id="s1", game_number=2, status=GameStatus.DRAFTING, **kwargs)


def _used(champion_id, team, reason=UnavailableReason.PICKED, game=1, side=DraftSide.BLUE):
    return UnavailableChampion(
        session_id="s1",
        champion_id=champion_id,
        from_game=game,
        reason=reason,
        team=team,
        side=side,
    )


class TestCurrentGame:
    """A champion already in this game is out regardless of mode."""

    @pytest.mark.parametrize("mode", list(DraftMode))
    def test_in_current_game_unavailable(self, mode):
        game = _game(red_bans=["Ahri", None, None, None, None])
        assert is_champion_unavailable("Ahri", mode, game, [], TeamSide.TEAM1)
        assert is_champion_unavailable("Ahri", mode, game, [], TeamSide.TEAM2)

    def test_timeout_sentinel_never_blocks_real_champion(self):
        game = _game(blue_bans=[NONE_CHAMPION, None, None, None, None])
        assert not is_champion_unavailable("Ahri", DraftMode.NORMAL, game, [])
        assert "__none__" not in game.champions_in_game


class TestNormalMode:
    def test_previous_games_ignored(self):
        """A champion picked in game 1 is selectable again in game 2."""
        ledger = [_used("Ahri", TeamSide.TEAM1)]
        assert not is_champion_unavailable("Ahri", DraftMode.NORMAL, _game(), ledger, TeamSide.TEAM1)
        assert not is_champion_unavailable("Ahri", DraftMode.NORMAL, _game(), ledger, TeamSide.TEAM2)


class TestFearlessMode:
    def test_own_pick_blocked_other_team_free(self):
        ledger = [_used("Ahri", TeamSide.TEAM1)]
        assert is_champion_unavailable("Ahri", DraftMode.FEARLESS, _game(), ledger, TeamSide.TEAM1)
        assert not is_champion_unavailable("Ahri", DraftMode.FEARLESS, _game(), ledger, TeamSide.TEAM2)

    def test_bans_do_not_carry_over(self):
        ledger = [_used("Ahri", TeamSide.TEAM1, reason=UnavailableReason.BANNED)]
        assert not is_champion_unavailable("Ahri", DraftMode.FEARLESS, _game(), ledger, TeamSide.TEAM1)

    def test_follows_team_across_side_swap(self):
        """Team1 picked Ahri on blue in game 1; in game 3 team1 is red and still blocked."""
        ledger = [_used("Ahri", TeamSide.TEAM1, side=DraftSide.BLUE)]
        game3 = LiveDraftGame(id="g3", session_id="s1", game_number=3, blue_side_team=TeamSide.TEAM2)
        assert is_champion_unavailable("Ahri", DraftMode.FEARLESS, game3, ledger, TeamSide.TEAM1)
        assert not is_champion_unavailable("Ahri", DraftMode.FEARLESS, game3, ledger, TeamSide.TEAM2)

    def test_without_team_only_current_game_counts(self):
        ledger = [_used("Ahri", TeamSide.TEAM1)]
        assert not is_champion_unavailable("Ahri", DraftMode.FEARLESS, _game(), ledger)

    def test_accepts_plain_strings(self):
        ledger = [_used("Ahri", TeamSide.TEAM1)]
        assert is_champion_unavailable("Ahri", "fearless", _game(), ledger, "team1")


class TestIronmanMode:
    @pytest.mark.parametrize("reason", list(UnavailableReason))
    @pytest.mark.parametrize("team", list(TeamSide))
    def test_any_prior_use_blocks_everyone(self, reason, team):
        ledger = [_used("Ahri", TeamSide.TEAM1, reason=reason)]
        assert is_champion_unavailable("Ahri", DraftMode.IRONMAN, _game(), ledger, team)

    def test_unused_champion_available(self):
        ledger = [_used("Ahri", TeamSide.TEAM1)]
        assert not is_champion_unavailable("Zed", DraftMode.IRONMAN, _game(), ledger, TeamSide.TEAM1)


class TestUnavailableIndex:
    """Tests for the read-side ledger index."""

    def test_blocked_sets_per_mode(self):
        ledger = [
            _used("Ahri", TeamSide.TEAM1),
            _used("Zed", TeamSide.TEAM2, reason=UnavailableReason.BANNED),
            _used("Lux", TeamSide.TEAM2, game=2),
        ]
        index = UnavailableIndex.from_ledger(ledger)

        assert index.blocked_for(DraftMode.NORMAL, TeamSide.TEAM1) == set()
        assert index.blocked_for(DraftMode.IRONMAN) == {"Ahri", "Zed", "Lux"}
        assert index.blocked_for(DraftMode.FEARLESS, TeamSide.TEAM1) == {"Ahri"}
        assert index.blocked_for(DraftMode.FEARLESS, TeamSide.TEAM2) == {"Lux"}

    def test_to_dict(self):
        index = UnavailableIndex.from_ledger([_used("Ahri", TeamSide.TEAM1)])
        assert index.to_dict() == {"Ahri": [{"team": "team1", "game": 1, "reason": "picked"}]}

    def test_unavailable_champions_combines_game_and_ledger(self):
        game = _game(blue_picks=["Jinx", None, None, None, None])
        ledger = [_used("Ahri", TeamSide.TEAM1)]
        assert unavailable_champions(DraftMode.FEARLESS, game, ledger, TeamSide.TEAM1) == {"Jinx", "Ahri"}
        assert unavailable_champions(DraftMode.FEARLESS, game, ledger, TeamSide.TEAM2) == {"Jinx"}
