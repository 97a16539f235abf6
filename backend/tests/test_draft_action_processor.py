"""Tests for applying draft actions to a game."""

from datetime import datetime, timedelta

import pytest

from live_draft.errors import (
    ChampionUnavailable,
    InvalidPhaseState,
    InvalidRequest,
    OutOfTurn,
    SlotAlreadyFilled,
    TimerNotExpired,
)
from live_draft.models.draft import (
    NONE_CHAMPION,
    DraftActionType,
    DraftMode,
    DraftPhase,
    DraftSide,
    GameStatus,
    SessionStatus,
    TeamSide,
    UnavailableReason,
)
from live_draft.models.session import LiveDraftGame, LiveDraftSession, UnavailableChampion
from live_draft.services.draft_action_processor import (
    apply_action,
    apply_timeout,
    begin_edit,
    draft_is_consistent,
    edit_slot,
    fill_timed_out_slot,
    finish_edit,
    is_turn_expired,
    turn_remaining,
)
from live_draft.services.draft_sequence import step_at

T0 = datetime(2026, 3, 1, 12, 0, 0)


def _session(mode=DraftMode.NORMAL, status=SessionStatus.IN_PROGRESS) -> LiveDraftSession:
    return LiveDraftSession(
        id="s1",
        name="Scrim",
        draft_mode=mode,
        planned_games=3,
        ban_time_seconds=30,
        pick_time_seconds=30,
        team1_side=DraftSide.BLUE,
        team2_side=DraftSide.RED,
        status=status,
    )


def _game(blue_side_team=TeamSide.TEAM1, game_number=1) -> LiveDraftGame:
    return LiveDraftGame(
        id=f"g{game_number}",
        session_id="s1",
        game_number=game_number,
        blue_side_team=blue_side_team,
        status=GameStatus.DRAFTING,
        current_phase=DraftPhase.BAN1,
        current_turn=DraftSide.BLUE,
        current_action_index=0,
        turn_started_at=T0,
    )


def _run_full_draft(session, game, ledger=()):
    """Apply all 20 steps with distinct champions."""
    for i in range(20):
        step = step_at(game.current_action_index)
        team = game.team_on(step.turn)
        outcome = apply_action(session, game, team, f"champ{i}", list(ledger), now=T0)
        game = outcome.game
    return game, outcome


class TestApplyAction:
    """Tests for bans and picks."""

    def test_first_ban(self):
        session, game = _session(), _game()
        outcome = apply_action(session, game, TeamSide.TEAM1, "Ahri", [], performed_by="cap1", now=T0)

        assert outcome.game.blue_bans[0] == "Ahri"
        assert outcome.game.current_action_index == 1
        assert outcome.game.current_turn is DraftSide.RED
        assert outcome.game.current_phase is DraftPhase.BAN1
        assert outcome.action.action_index == 0
        assert outcome.action.action_type is DraftActionType.BAN
        assert outcome.action.team is DraftSide.BLUE
        assert outcome.action.performed_by == "cap1"
        assert outcome.expected_index == 0
        assert outcome.expected_version == game.version
        assert not outcome.completed

    def test_outcome_carries_snapshot_version(self):
        session, game = _session(), _game()
        game.version = 7
        outcome = apply_action(session, game, TeamSide.TEAM1, "Ahri", [], now=T0)
        assert outcome.expected_version == 7
        # The store assigns the next version on commit
        assert outcome.game.version == 7

    def test_input_game_not_mutated(self):
        session, game = _session(), _game()
        apply_action(session, game, TeamSide.TEAM1, "Ahri", [], now=T0)
        assert game.blue_bans[0] is None
        assert game.current_action_index == 0

    def test_team_resolved_through_blue_side_team(self):
        """Team2 on blue acts first."""
        session, game = _session(), _game(blue_side_team=TeamSide.TEAM2)
        with pytest.raises(OutOfTurn):
            apply_action(session, game, TeamSide.TEAM1, "Ahri", [], now=T0)
        outcome = apply_action(session, game, TeamSide.TEAM2, "Ahri", [], now=T0)
        assert outcome.game.blue_bans[0] == "Ahri"

    def test_out_of_turn(self):
        with pytest.raises(OutOfTurn):
            apply_action(_session(), _game(), TeamSide.TEAM2, "Ahri", [], now=T0)

    def test_champion_already_in_game(self):
        session = _session()
        game = apply_action(session, _game(), TeamSide.TEAM1, "Ahri", [], now=T0).game
        with pytest.raises(ChampionUnavailable):
            apply_action(session, game, TeamSide.TEAM2, "Ahri", [], now=T0)

    @pytest.mark.parametrize("champion", [None, "", NONE_CHAMPION])
    def test_missing_champion_rejected(self, champion):
        with pytest.raises(ChampionUnavailable):
            apply_action(_session(), _game(), TeamSide.TEAM1, champion, [], now=T0)

    def test_game_not_drafting(self):
        game = _game()
        game.status = GameStatus.PENDING
        with pytest.raises(InvalidPhaseState):
            apply_action(_session(), game, TeamSide.TEAM1, "Ahri", [], now=T0)

    def test_paused_session_rejects_actions(self):
        with pytest.raises(InvalidPhaseState):
            apply_action(_session(status=SessionStatus.PAUSED), _game(), TeamSide.TEAM1, "Ahri", [], now=T0)

    def test_filled_slot_rejected(self):
        game = _game()
        game.blue_bans[0] = "Zed"
        with pytest.raises(SlotAlreadyFilled):
            apply_action(_session(), game, TeamSide.TEAM1, "Ahri", [], now=T0)

    def test_turn_clock_restarts(self):
        later = T0 + timedelta(seconds=12)
        outcome = apply_action(_session(), _game(), TeamSide.TEAM1, "Ahri", [], now=later)
        assert outcome.game.turn_started_at == later


class TestFullDraft:
    """Applying the whole sequence."""

    def test_twenty_steps_complete_the_game(self):
        session = _session()
        game, last = _run_full_draft(session, _game())

        for key in ("blue_bans", "red_bans", "blue_picks", "red_picks"):
            slots = getattr(game, key)
            assert len(slots) == 5
            assert all(s is not None for s in slots)
        assert game.status is GameStatus.COMPLETED
        assert game.current_action_index == 20
        assert game.current_phase is None
        assert game.current_turn is None
        assert game.completed_at == T0
        assert last.completed
        assert draft_is_consistent(game)

    def test_no_action_after_completion(self):
        session = _session()
        game, _ = _run_full_draft(session, _game())
        with pytest.raises(InvalidPhaseState):
            apply_action(session, game, TeamSide.TEAM1, "Ahri", [], now=T0)


class TestSeriesRules:
    """Availability rules applied at submission."""

    def test_ironman_ban_blocks_pick_next_game(self):
        """Ahri banned by blue in game 1 cannot be picked by either side in game 2."""
        session = _session(mode=DraftMode.IRONMAN)
        ledger = [
            UnavailableChampion(
                session_id="s1",
                champion_id="Ahri",
                from_game=1,
                reason=UnavailableReason.BANNED,
                team=TeamSide.TEAM1,
                side=DraftSide.BLUE,
            )
        ]
        game2 = _game(blue_side_team=TeamSide.TEAM2, game_number=2)
        # Advance to the first pick (index 6)
        for i in range(6):
            step = step_at(game2.current_action_index)
            game2 = apply_action(session, game2, game2.team_on(step.turn), f"ban{i}", ledger, now=T0).game

        with pytest.raises(ChampionUnavailable):
            apply_action(session, game2, TeamSide.TEAM2, "Ahri", ledger, now=T0)
        game2 = apply_action(session, game2, TeamSide.TEAM2, "Zed", ledger, now=T0).game
        with pytest.raises(ChampionUnavailable):
            apply_action(session, game2, TeamSide.TEAM1, "Ahri", ledger, now=T0)

    def test_fearless_blocks_only_the_team_that_picked(self):
        session = _session(mode=DraftMode.FEARLESS)
        ledger = [
            UnavailableChampion(
                session_id="s1",
                champion_id="Ahri",
                from_game=1,
                reason=UnavailableReason.PICKED,
                team=TeamSide.TEAM1,
                side=DraftSide.BLUE,
            )
        ]
        with pytest.raises(ChampionUnavailable):
            apply_action(session, _game(), TeamSide.TEAM1, "Ahri", ledger, now=T0)
        game = _game(blue_side_team=TeamSide.TEAM2)
        outcome = apply_action(session, game, TeamSide.TEAM2, "Ahri", ledger, now=T0)
        assert outcome.game.blue_bans[0] == "Ahri"


class TestTimeouts:
    """Timer expiry and timeout actions."""

    def test_remaining(self):
        session, game = _session(), _game()
        assert turn_remaining(session, game, T0 + timedelta(seconds=10)) == 20
        assert turn_remaining(session, game, T0 + timedelta(seconds=35)) == -5

    def test_not_expired_inside_budget_or_grace(self):
        session, game = _session(), _game()
        assert not is_turn_expired(session, game, T0 + timedelta(seconds=29))
        assert is_turn_expired(session, game, T0 + timedelta(seconds=30))
        assert not is_turn_expired(session, game, T0 + timedelta(seconds=31), grace_seconds=2)
        assert is_turn_expired(session, game, T0 + timedelta(seconds=32), grace_seconds=2)

    def test_timeout_applies_sentinel(self):
        """Elapsed turn resolves with no champion; index advances by one."""
        session, game = _session(), _game()
        outcome = apply_timeout(session, game, performed_by="timer", now=T0 + timedelta(seconds=31))

        assert outcome.game.blue_bans[0] == NONE_CHAMPION
        assert outcome.action.action_type is DraftActionType.TIMEOUT
        assert outcome.action.champion_id is None
        assert outcome.game.current_action_index == 1
        assert outcome.game.current_turn is DraftSide.RED

    def test_early_timeout_rejected(self):
        with pytest.raises(TimerNotExpired):
            apply_timeout(_session(), _game(), now=T0 + timedelta(seconds=5))

    def test_forced_timeout_skips_expiry_check(self):
        outcome = apply_timeout(_session(), _game(), now=T0, require_expired=False)
        assert outcome.game.blue_bans[0] == NONE_CHAMPION

    def test_no_remaining_for_pending_game(self):
        game = _game()
        game.status = GameStatus.PENDING
        assert turn_remaining(_session(), game, T0) is None


class TestEdits:
    """Post-completion corrections."""

    def _completed(self):
        game, _ = _run_full_draft(_session(), _game())
        return game

    def test_edit_cycle(self):
        game = begin_edit(self._completed(), now=T0)
        assert game.status is GameStatus.EDITING

        edited, record = edit_slot(game, "blue_pick_3", "Ahri", now=T0)
        assert edited.blue_picks[3] == "Ahri"
        assert record.slot == "blue_pick_3"
        assert record.original == "champ17"
        assert record.edited == "Ahri"
        assert edited.edited_picks == [record]

        done = finish_edit(edited, now=T0)
        assert done.status is GameStatus.COMPLETED

    def test_edit_requires_editing(self):
        with pytest.raises(InvalidPhaseState):
            edit_slot(self._completed(), "blue_pick_3", "Ahri")

    def test_begin_edit_requires_completed(self):
        with pytest.raises(InvalidPhaseState):
            begin_edit(_game())

    def test_edit_rejects_champion_elsewhere_in_game(self):
        game = begin_edit(self._completed())
        with pytest.raises(ChampionUnavailable):
            edit_slot(game, "blue_pick_3", "champ0")

    def test_edit_rejects_bad_slot(self):
        game = begin_edit(self._completed())
        with pytest.raises(InvalidRequest):
            edit_slot(game, "blue_pick_9", "Ahri")


class TestFillTimedOutSlot:
    def test_fill_during_drafting(self):
        session = _session(mode=DraftMode.FEARLESS)
        game = apply_timeout(session, _game(), now=T0 + timedelta(seconds=40)).game
        filled, record = fill_timed_out_slot(session, game, "blue_ban_0", "Ahri", [], now=T0)
        assert filled.blue_bans[0] == "Ahri"
        assert record.original == NONE_CHAMPION
        assert filled.current_action_index == 1

    def test_only_timed_out_slots(self):
        session = _session()
        game = apply_action(session, _game(), TeamSide.TEAM1, "Zed", [], now=T0).game
        with pytest.raises(InvalidRequest):
            fill_timed_out_slot(session, game, "blue_ban_0", "Ahri", [])

    def test_checks_series_rules_for_slot_team(self):
        session = _session(mode=DraftMode.FEARLESS)
        game = apply_timeout(session, _game(), now=T0 + timedelta(seconds=40)).game
        ledger = [
            UnavailableChampion(
                session_id="s1",
                champion_id="Ahri",
                from_game=1,
                reason=UnavailableReason.PICKED,
                team=TeamSide.TEAM1,
                side=DraftSide.BLUE,
            )
        ]
        with pytest.raises(ChampionUnavailable):
            fill_timed_out_slot(session, game, "blue_ban_0", "Ahri", ledger)

    def test_pending_game_rejected(self):
        game = _game()
        game.status = GameStatus.PENDING
        with pytest.raises(InvalidPhaseState):
            fill_timed_out_slot(_session(), game, "blue_ban_0", "Ahri", [])
