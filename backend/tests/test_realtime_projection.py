"""Tests for realtime events and client-side projections."""

from datetime import datetime

import pytest

from live_draft.models.draft import (
    NONE_CHAMPION,
    DraftActionType,
    DraftPhase,
    DraftSide,
    GameStatus,
    SessionStatus,
    TeamSide,
)
from live_draft.models.events import (
    ChatMessageEvent,
    DraftActionEvent,
    GameStateEvent,
    HoverEvent,
    PresenceState,
    SessionUpdatedEvent,
    SlotEditedEvent,
    TimerEvent,
    parse_event,
)
from live_draft.models.session import EditedPick, LiveDraftGame, LiveDraftSession, Participant
from live_draft.services.draft_action_processor import apply_action
from live_draft.services.realtime_projection import (
    DraftProjection,
    events_for_action,
    presence_event,
    slot_edited_event,
    timer_event,
)

T0 = datetime(2026, 3, 1, 12, 0, 0)


def _game() -> LiveDraftGame:
    return LiveDraftGame(
        id="g1",
        session_id="s1",
        game_number=1,
        status=GameStatus.DRAFTING,
        current_phase=DraftPhase.BAN1,
        current_turn=DraftSide.BLUE,
        turn_started_at=T0,
    )


def _session() -> LiveDraftSession:
    return LiveDraftSession(
        id="s1",
        name="Scrim",
        team1_side=DraftSide.BLUE,
        team2_side=DraftSide.RED,
        status=SessionStatus.IN_PROGRESS,
    )


def _action(index, team, champion="Ahri", action_type=DraftActionType.BAN):
    return DraftActionEvent(
        game_id="g1",
        action_index=index,
        action_type=action_type,
        team=team,
        champion_id=champion,
    )


class TestWireFormat:
    """Events serialize to camelCase JSON with a type discriminator."""

    def test_draft_action_payload(self):
        event = _action(0, DraftSide.BLUE)
        assert event.to_payload() == {
            "type": "draft_action",
            "gameId": "g1",
            "actionIndex": 0,
            "actionType": "ban",
            "team": "blue",
            "championId": "Ahri",
            "performedBy": None,
        }

    @pytest.mark.parametrize(
        "event",
        [
            _action(3, DraftSide.RED),
            HoverEvent(game_id="g1", team=DraftSide.RED, champion_id="Zed"),
            TimerEvent(game_id="g1", remaining=12, phase=DraftPhase.PICK1, turn=DraftSide.RED),
            GameStateEvent(game_id="g1", status=GameStatus.COMPLETED, phase=None, turn=None, action_index=20),
            ChatMessageEvent(id="m1", session_id="s1", user_id=None, display_name="Alice", content="gl", created_at="2026-03-01T12:00:00"),
            PresenceState(participant_id="p1", user_id="u1", display_name="Alice", team=TeamSide.TEAM1, is_captain=True, is_connected=False),
            SessionUpdatedEvent(session_id="s1", status=SessionStatus.PAUSED, current_game_number=2),
            SlotEditedEvent(game_id="g1", slot="blue_ban_0", original=NONE_CHAMPION, edited="Ahri", at="2026-03-01T12:00:30"),
        ],
    )
    def test_parse_event_restores_event(self, event):
        assert parse_event(event.to_payload()) == event

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            parse_event({"type": "teleport"})

    def test_malformed_fields(self):
        with pytest.raises(ValueError):
            parse_event({"type": "draft_action", "gameId": "g1"})
        with pytest.raises(ValueError):
            parse_event({"type": "champion_hovered", "gameId": "g1", "team": "green"})


class TestOutbound:
    def test_events_for_action(self):
        outcome = apply_action(_session(), _game(), TeamSide.TEAM1, "Ahri", [], now=T0)
        action_evt, state_evt = events_for_action(outcome.action, outcome.game)
        assert action_evt.action_index == 0
        assert action_evt.champion_id == "Ahri"
        assert state_evt.action_index == 1
        assert state_evt.turn is DraftSide.RED

    def test_timer_rounds_up_and_floors_at_zero(self):
        assert timer_event(_game(), 12.2).remaining == 13
        assert timer_event(_game(), -3).remaining == 0

    def test_no_timer_without_turn(self):
        game = _game()
        game.current_phase = None
        game.current_turn = None
        assert timer_event(game, 10) is None

    def test_presence_defaults_display_name(self):
        participant = Participant(id="p1", session_id="s1", participant_type="spectator")
        assert presence_event(participant).display_name == "Anonymous"

    def test_slot_edited_event(self):
        edit = EditedPick(slot="red_pick_2", original="Zed", edited="Lux", at="2026-03-01T12:30:00")
        event = slot_edited_event(_game(), edit)
        assert event.to_payload() == {
            "type": "slot_edited",
            "gameId": "g1",
            "slot": "red_pick_2",
            "original": "Zed",
            "edited": "Lux",
            "at": "2026-03-01T12:30:00",
        }


class TestDraftProjection:
    """Folding inbound events into a local view."""

    def _projection(self):
        projection = DraftProjection(session_id="s1")
        projection.reset(_game())
        return projection

    def test_applies_actions_in_order(self):
        projection = self._projection()
        assert projection.apply(_action(0, DraftSide.BLUE, "Ahri"))
        assert projection.apply(_action(1, DraftSide.RED, "Zed"))

        assert projection.game.blue_bans[0] == "Ahri"
        assert projection.game.red_bans[0] == "Zed"
        assert projection.game.current_action_index == 2
        assert projection.game.current_turn is DraftSide.BLUE
        assert not projection.needs_resync

    def test_duplicate_delivery_ignored(self):
        projection = self._projection()
        projection.apply(_action(0, DraftSide.BLUE, "Ahri"))
        assert not projection.apply(_action(0, DraftSide.BLUE, "Ahri"))
        assert projection.game.current_action_index == 1

    def test_gap_requests_resync(self):
        projection = self._projection()
        assert not projection.apply(_action(2, DraftSide.BLUE, "Lux"))
        assert projection.needs_resync
        assert projection.game.current_action_index == 0

    def test_wrong_side_requests_resync(self):
        projection = self._projection()
        projection.apply(_action(0, DraftSide.RED, "Ahri"))
        assert projection.needs_resync

    def test_timeout_writes_sentinel(self):
        projection = self._projection()
        projection.apply(_action(0, DraftSide.BLUE, None, DraftActionType.TIMEOUT))
        assert projection.game.blue_bans[0] == NONE_CHAMPION

    def test_other_game_ignored(self):
        projection = self._projection()
        event = DraftActionEvent(game_id="g9", action_index=0, action_type=DraftActionType.BAN, team=DraftSide.BLUE, champion_id="Ahri")
        assert not projection.apply(event)
        assert not projection.needs_resync

    def test_hover_cleared_by_action(self):
        projection = self._projection()
        projection.apply(HoverEvent(game_id="g1", team=DraftSide.BLUE, champion_id="Ahri"))
        assert projection.hovers == {"blue": "Ahri"}
        projection.apply(_action(0, DraftSide.BLUE, "Ahri"))
        assert "blue" not in projection.hovers

    def test_session_update_requests_resync_and_reset_clears_it(self):
        projection = self._projection()
        projection.apply(SessionUpdatedEvent(session_id="s1", status=SessionStatus.IN_PROGRESS, current_game_number=2))
        assert projection.needs_resync
        projection.reset(_game())
        assert not projection.needs_resync

    def test_game_state_mismatch_requests_resync(self):
        projection = self._projection()
        projection.apply(GameStateEvent(game_id="g1", status=GameStatus.DRAFTING, phase=DraftPhase.BAN1, turn=DraftSide.RED, action_index=1))
        assert projection.needs_resync

    def test_chat_deduplicated_and_presence_tracked(self):
        projection = self._projection()
        message = ChatMessageEvent(id="m1", session_id="s1", user_id=None, display_name="A", content="hi", created_at="t")
        assert projection.apply(message)
        assert not projection.apply(message)
        projection.apply(PresenceState(participant_id="p1", user_id=None, display_name="A", team=None, is_captain=False, is_connected=True))
        assert "p1" in projection.presence

    def test_timer_tracked(self):
        projection = self._projection()
        projection.apply(TimerEvent(game_id="g1", remaining=7, phase=DraftPhase.BAN1, turn=DraftSide.BLUE))
        assert projection.remaining == 7

    def test_reset_does_not_share_state(self):
        game = _game()
        projection = DraftProjection(session_id="s1")
        projection.reset(game)
        projection.apply(_action(0, DraftSide.BLUE, "Ahri"))
        assert game.blue_bans[0] is None

    def _slot_edit(self, slot="blue_ban_0", original=NONE_CHAMPION, edited="Ahri", game_id="g1"):
        return SlotEditedEvent(
            game_id=game_id, slot=slot, original=original, edited=edited, at="2026-03-01T12:00:30"
        )

    def test_slot_fill_after_timeout(self):
        projection = self._projection()
        projection.apply(_action(0, DraftSide.BLUE, None, DraftActionType.TIMEOUT))
        # A fill keeps the action index, so the following game_state is accepted as is
        assert projection.apply(self._slot_edit())
        assert projection.apply(GameStateEvent(game_id="g1", status=GameStatus.DRAFTING, phase=DraftPhase.BAN1, turn=DraftSide.RED, action_index=1))

        assert projection.game.blue_bans[0] == "Ahri"
        assert projection.game.edited_picks == [
            EditedPick(slot="blue_ban_0", original=NONE_CHAMPION, edited="Ahri", at="2026-03-01T12:00:30")
        ]
        assert not projection.needs_resync

    def test_slot_edit_after_draft(self):
        game = _game()
        game.red_picks[4] = "Zed"
        game.status = GameStatus.EDITING
        projection = DraftProjection(session_id="s1")
        projection.reset(game)

        assert projection.apply(self._slot_edit("red_pick_4", "Zed", "Lux"))
        assert projection.game.red_picks[4] == "Lux"
        assert len(projection.game.edited_picks) == 1

    def test_slot_edit_duplicate_ignored(self):
        projection = self._projection()
        projection.apply(_action(0, DraftSide.BLUE, None, DraftActionType.TIMEOUT))
        projection.apply(self._slot_edit())
        assert not projection.apply(self._slot_edit())
        assert len(projection.game.edited_picks) == 1
        assert not projection.needs_resync

    def test_slot_edit_on_unexpected_value_requests_resync(self):
        projection = self._projection()
        # Local view never saw the timeout
        assert not projection.apply(self._slot_edit())
        assert projection.needs_resync
        assert projection.game.blue_bans[0] is None

    def test_slot_edit_bad_slot_requests_resync(self):
        projection = self._projection()
        assert not projection.apply(self._slot_edit(slot="blue_ward_0"))
        assert projection.needs_resync

    def test_slot_edit_for_other_game_ignored(self):
        projection = self._projection()
        assert not projection.apply(self._slot_edit(game_id="g9"))
        assert not projection.needs_resync
