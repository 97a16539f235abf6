"""Tests for the background turn timer."""

from datetime import timedelta

import pytest

from live_draft.config import Settings
from live_draft.models.draft import NONE_CHAMPION, DraftActionType, DraftSide, TeamSide
from live_draft.models.events import TimerEvent
from live_draft.repositories.live_draft_repository import LiveDraftRepository
from live_draft.services.event_hub import EventHub
from live_draft.services.live_draft_service import LiveDraftService
from live_draft.services.turn_timer import TIMER_PERFORMER, TurnTimer


@pytest.fixture
def service():
    settings = Settings(draft_diagnostics=False, default_ban_time_seconds=30)
    service = LiveDraftService(LiveDraftRepository(":memory:"), EventHub(), settings)
    yield service
    service.repository.close()


@pytest.fixture
def drafting_game(service):
    session = service.create_session("Scrim", planned_games=1)
    service.join_as_captain(session.id, TeamSide.TEAM1, "Alice", user_id="u1")
    service.join_as_captain(session.id, TeamSide.TEAM2, "Bob", user_id="u2")
    service.select_side(session.id, TeamSide.TEAM1, DraftSide.BLUE)
    service.select_side(session.id, TeamSide.TEAM2, DraftSide.RED)
    service.set_ready(session.id, TeamSide.TEAM1)
    service.set_ready(session.id, TeamSide.TEAM2)
    service.start_session(session.id)
    return service.start_game(session.id)


def _drain(subscription) -> list:
    events = []
    while not subscription.queue.empty():
        events.append(subscription.queue.get_nowait())
    return events


class TestTick:
    """One timer pass at a chosen instant."""

    def test_publishes_remaining_time(self, service, drafting_game):
        timer = TurnTimer(service, grace_seconds=2.0)
        subscription = service.hub.subscribe(drafting_game.session_id)

        report = timer.tick(now=drafting_game.turn_started_at + timedelta(seconds=10.5))

        assert report.ticked == 1
        assert report.timed_out == 0
        (event,) = _drain(subscription)
        assert isinstance(event, TimerEvent)
        assert event.remaining == 20
        assert event.turn is DraftSide.BLUE

    def test_no_timeout_within_grace(self, service, drafting_game):
        timer = TurnTimer(service, grace_seconds=2.0)
        report = timer.tick(now=drafting_game.turn_started_at + timedelta(seconds=31))

        assert report.timed_out == 0
        assert service.repository.get_game(drafting_game.id).current_action_index == 0

    def test_timeout_after_grace(self, service, drafting_game):
        timer = TurnTimer(service, grace_seconds=2.0)
        report = timer.tick(now=drafting_game.turn_started_at + timedelta(seconds=33))

        assert report.timed_out == 1
        game = service.repository.get_game(drafting_game.id)
        assert game.current_action_index == 1
        assert game.blue_bans[0] == NONE_CHAMPION
        (action,) = service.repository.list_actions(game.id)
        assert action.action_type is DraftActionType.TIMEOUT
        assert action.performed_by == TIMER_PERFORMER

    def test_timeout_applied_once(self, service, drafting_game):
        """A second pass at the same instant sees the next turn's fresh clock."""
        timer = TurnTimer(service, grace_seconds=2.0)
        late = drafting_game.turn_started_at + timedelta(seconds=40)

        assert timer.tick(now=late).timed_out == 1
        assert timer.tick(now=late).timed_out == 0
        assert len(service.repository.list_actions(drafting_game.id)) == 1

    def test_paused_sessions_skipped(self, service, drafting_game):
        service.pause(drafting_game.session_id)
        timer = TurnTimer(service, grace_seconds=2.0)

        report = timer.tick(now=drafting_game.turn_started_at + timedelta(seconds=120))

        assert report.ticked == 0
        assert report.timed_out == 0
        assert service.repository.get_game(drafting_game.id).current_action_index == 0

    def test_cancelled_mid_draft_not_revisited(self, service, drafting_game):
        service.cancel(drafting_game.session_id)
        timer = TurnTimer(service, grace_seconds=2.0)

        assert service.repository.list_drafting_games() == []
        report = timer.tick(now=drafting_game.turn_started_at + timedelta(seconds=120))

        assert report.ticked == 0
        assert report.timed_out == 0
        assert service.repository.list_actions(drafting_game.id) == []

    def test_no_drafting_games(self, service):
        assert TurnTimer(service).tick().ticked == 0


class TestLifecycle:
    @pytest.mark.anyio
    async def test_start_and_stop(self, service):
        timer = TurnTimer(service, tick_seconds=0.01)
        timer.start()
        assert timer.running
        await timer.stop()
        assert not timer.running
