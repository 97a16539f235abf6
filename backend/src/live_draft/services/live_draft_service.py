"""Live draft orchestration: rules, persistence and broadcast in one place."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from live_draft.config import Settings, get_settings
from live_draft.errors import (
    InvalidPhaseState,
    InvalidRequest,
    LiveDraftError,
    NotFound,
    SlotAlreadyFilled,
    StaleWrite,
)
from live_draft.models.draft import (
    DraftMode,
    DraftSide,
    GameStatus,
    ParticipantType,
    SessionStatus,
    TeamSide,
)
from live_draft.models.events import HoverEvent
from live_draft.models.session import (
    ChatMessage,
    DraftActionRecord,
    LiveDraftGame,
    LiveDraftSession,
    Participant,
)
from live_draft.repositories.live_draft_repository import LiveDraftRepository
from live_draft.services import draft_action_processor as processor
from live_draft.services import session_state_machine as machine
from live_draft.services.champion_availability import UnavailableIndex, unavailable_champions
from live_draft.services.draft_diagnostics import DraftDiagnostics
from live_draft.services.draft_sequence import parse_slot_name
from live_draft.services.event_hub import EventHub
from live_draft.services.realtime_projection import (
    chat_event,
    events_for_action,
    game_state_event,
    presence_event,
    session_event,
    slot_edited_event,
    timer_event,
)
from live_draft.services.series_scoreboard import (
    SeriesScore,
    get_series_score,
    is_series_clinched,
    ledger_entry_for_slot,
    series_leader,
)
from live_draft.utils import new_id, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Outcome of a submitted ban, pick or timeout."""

    applied: bool  # False when another writer advanced the game first
    game: LiveDraftGame  # Latest stored game
    action: Optional[DraftActionRecord] = None


class LiveDraftService:
    """Coordinates live draft sessions.

    The only component that writes draft state. Rule checks run on snapshots
    in the pure processor/state machine modules, then the result is stored
    and broadcast to the session's subscribers.
    """

    def __init__(
        self,
        repository: LiveDraftRepository,
        hub: Optional[EventHub] = None,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.hub = hub or EventHub()
        self.settings = settings or get_settings()
        self._diagnostics: dict[str, DraftDiagnostics] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _publish(self, session_id: str, *events) -> None:
        for event in events:
            if event is not None:
                self.hub.publish(session_id, event)

    def _save_session(self, session: LiveDraftSession) -> LiveDraftSession:
        self.repository.save_session(session)
        self._publish(session.id, session_event(session))
        return session

    def _current_game(self, session: LiveDraftSession) -> Optional[LiveDraftGame]:
        return self.repository.get_game_by_number(session.id, session.current_game_number)

    def _game_and_session(self, game_id: str) -> tuple[LiveDraftGame, LiveDraftSession]:
        game = self.repository.get_game(game_id)
        return game, self.repository.get_session(game.session_id)

    def _diagnostics_for(self, game_id: str) -> Optional[DraftDiagnostics]:
        return self._diagnostics.get(game_id)

    def _close_diagnostics(self, game_id: str) -> None:
        diagnostics = self._diagnostics.pop(game_id, None)
        if diagnostics is not None:
            diagnostics.save()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(
        self,
        name: str,
        draft_mode: DraftMode = DraftMode.NORMAL,
        planned_games: int = 1,
        ban_time_seconds: Optional[int] = None,
        pick_time_seconds: Optional[int] = None,
        team1_name: Optional[str] = None,
        team2_name: Optional[str] = None,
        created_by: Optional[str] = None,
        linked_draft_id: Optional[str] = None,
        linked_team_id: Optional[str] = None,
        linked_enemy_id: Optional[str] = None,
    ) -> LiveDraftSession:
        """Create a session in the lobby.

        Time budgets default to the configured ban/pick seconds.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidRequest("Session name is required")
        session = machine.create_session(
            name=name,
            draft_mode=draft_mode,
            planned_games=planned_games,
            ban_time_seconds=ban_time_seconds or self.settings.default_ban_time_seconds,
            pick_time_seconds=pick_time_seconds or self.settings.default_pick_time_seconds,
            team1_name=(team1_name or "").strip() or None,
            team2_name=(team2_name or "").strip() or None,
            created_by=created_by,
            linked_draft_id=linked_draft_id,
            linked_team_id=linked_team_id,
            linked_enemy_id=linked_enemy_id,
            max_name_length=self.settings.name_max_length,
            max_planned_games=self.settings.max_planned_games,
        )
        self.repository.create_session(session)
        logger.info(
            f"Created session {session.id} ({session.draft_mode.value}, "
            f"Bo{session.planned_games})"
        )
        return session

    def get_session(self, session_id: str) -> LiveDraftSession:
        return self.repository.get_session(session_id)

    def get_session_by_invite(self, invite_token: str) -> LiveDraftSession:
        return self.repository.get_session_by_invite(invite_token)

    def list_sessions(self, status: Optional[str] = None, limit: int = 50) -> list[dict]:
        return self.repository.list_sessions(status=status, limit=limit)

    def delete_session(self, session_id: str, requested_by: Optional[str] = None) -> None:
        """Delete a session and its history; completed series are kept."""
        session = self.repository.get_session(session_id)
        if session.created_by and requested_by != session.created_by:
            raise InvalidRequest("Only the session creator can delete this draft")
        if session.status is SessionStatus.COMPLETED:
            raise InvalidPhaseState("Completed sessions cannot be deleted")
        for game in self.repository.list_games(session_id):
            self._diagnostics.pop(game.id, None)
        self.repository.delete_session(session_id)
        logger.info(f"Deleted session {session_id}")

    def get_snapshot(self, session_id: str) -> dict:
        """Everything a client needs to (re)build its view of a session."""
        session = self.repository.get_session(session_id)
        games = self.repository.list_games(session_id)
        current = next((g for g in games if g.game_number == session.current_game_number), None)
        ledger = self.repository.get_unavailable(session_id)

        remaining = None
        if current is not None:
            remaining = processor.turn_remaining(session, current)

        return {
            "session": session.to_dict(),
            "games": [g.to_dict() for g in games],
            "current_game": current.to_dict() if current else None,
            "actions": [a.to_dict() for a in self.repository.list_actions(current.id)] if current else [],
            "unavailable": UnavailableIndex.from_ledger(ledger).to_dict(),
            "score": get_series_score(games).to_dict(),
            "participants": [p.to_dict() for p in self.repository.list_participants(session_id)],
            "messages": [m.to_dict() for m in self.repository.list_messages(session_id)],
            "remaining": remaining,
        }

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def _find_participant(
        self,
        session_id: str,
        user_id: Optional[str],
        display_name: Optional[str],
    ) -> Optional[Participant]:
        for participant in self.repository.list_participants(session_id):
            if user_id and participant.user_id == user_id:
                return participant
            if not user_id and not participant.user_id and participant.display_name == display_name:
                return participant
        return None

    def join_as_captain(
        self,
        session_id: str,
        team: TeamSide,
        display_name: str,
        user_id: Optional[str] = None,
        avatar_url: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Participant:
        """Claim a team's captain slot and register the captain as a controller."""
        team = TeamSide(team)
        session = self.repository.get_session(session_id)
        display_name = (display_name or "").strip()
        session = machine.assign_captain(
            session,
            team,
            display_name,
            user_id=user_id,
            avatar_url=avatar_url,
            role=role,
            max_name_length=self.settings.name_max_length,
        )
        self._save_session(session)

        now = utcnow()
        participant = self._find_participant(session_id, user_id, display_name)
        if participant is None:
            participant = self.repository.add_participant(
                Participant(
                    id=new_id("par_"),
                    session_id=session_id,
                    participant_type=ParticipantType.CONTROLLER,
                    user_id=user_id,
                    team=team,
                    display_name=display_name,
                    is_captain=True,
                    is_connected=True,
                    last_seen_at=now,
                    joined_at=now,
                )
            )
        else:
            participant = self.repository.save_participant(
                replace(
                    participant,
                    participant_type=ParticipantType.CONTROLLER,
                    team=team,
                    display_name=display_name,
                    is_captain=True,
                    is_connected=True,
                    last_seen_at=now,
                )
            )
        self._publish(session_id, presence_event(participant))
        logger.info(f"{display_name} is captain of {team.value} in session {session_id}")
        return participant

    def join_as_spectator(
        self,
        session_id: str,
        display_name: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Participant:
        session = self.repository.get_session(session_id)
        display_name = (display_name or "").strip() or "Spectator"
        if len(display_name) > self.settings.name_max_length:
            raise InvalidRequest(
                f"Display name must be {self.settings.name_max_length} characters or less"
            )

        now = utcnow()
        participant = self._find_participant(session.id, user_id, display_name)
        if participant is None:
            participant = self.repository.add_participant(
                Participant(
                    id=new_id("par_"),
                    session_id=session.id,
                    participant_type=ParticipantType.SPECTATOR,
                    user_id=user_id,
                    display_name=display_name,
                    last_seen_at=now,
                    joined_at=now,
                )
            )
        else:
            participant = self.repository.save_participant(
                replace(participant, is_connected=True, last_seen_at=now)
            )
        self._publish(session.id, presence_event(participant))
        return participant

    def _demote_captains(self, session_id: str, team: TeamSide) -> None:
        for participant in self.repository.list_participants(session_id):
            if participant.is_captain and participant.team is team:
                demoted = self.repository.save_participant(
                    replace(
                        participant,
                        participant_type=ParticipantType.SPECTATOR,
                        team=None,
                        is_captain=False,
                    )
                )
                self._publish(session_id, presence_event(demoted))

    def leave_captain_role(self, session_id: str, participant_id: str) -> LiveDraftSession:
        """A captain steps down; their team's slot, side and ready flag are cleared."""
        participant = self.repository.get_participant(participant_id)
        if participant.session_id != session_id or not participant.is_captain:
            raise InvalidRequest("Participant is not a captain of this session")
        session = machine.release_captain(self.repository.get_session(session_id), participant.team)
        self._save_session(session)
        self._demote_captains(session_id, participant.team)
        logger.info(f"Captain of {participant.team.value} left session {session_id}")
        return session

    def kick_captain(
        self,
        session_id: str,
        team: TeamSide,
        requested_by: Optional[str] = None,
    ) -> LiveDraftSession:
        """Free a team's captain slot (session creator only)."""
        team = TeamSide(team)
        session = self.repository.get_session(session_id)
        if session.created_by and requested_by != session.created_by:
            raise InvalidRequest("Only the session creator can kick a captain")
        session = machine.release_captain(session, team)
        self._save_session(session)
        self._demote_captains(session_id, team)
        logger.info(f"Captain of {team.value} kicked from session {session_id}")
        return session

    def update_connection(self, participant_id: str, is_connected: bool) -> Participant:
        participant = self.repository.get_participant(participant_id)
        participant = self.repository.save_participant(
            replace(participant, is_connected=is_connected, last_seen_at=utcnow())
        )
        self._publish(participant.session_id, presence_event(participant))
        return participant

    def list_participants(self, session_id: str) -> list[Participant]:
        self.repository.get_session(session_id)
        return self.repository.list_participants(session_id)

    # ------------------------------------------------------------------
    # Lobby and series control
    # ------------------------------------------------------------------

    def select_side(self, session_id: str, team: TeamSide, side: DraftSide) -> LiveDraftSession:
        session = self.repository.get_session(session_id)
        session = machine.select_side(session, TeamSide(team), DraftSide(side), self._current_game(session))
        return self._save_session(session)

    def clear_sides(self, session_id: str) -> LiveDraftSession:
        session = self.repository.get_session(session_id)
        session = machine.clear_sides(session, self._current_game(session))
        return self._save_session(session)

    def set_ready(self, session_id: str, team: TeamSide, ready: bool = True) -> LiveDraftSession:
        session = machine.set_ready(self.repository.get_session(session_id), TeamSide(team), ready)
        return self._save_session(session)

    def start_session(self, session_id: str) -> tuple[LiveDraftSession, LiveDraftGame]:
        """Leave the lobby; Game 1 is created pending."""
        session, game = machine.start_session(self.repository.get_session(session_id))
        self.repository.create_game(game)
        self._save_session(session)
        logger.info(
            f"Session {session_id} started, {game.blue_side_team.value} on blue for game 1"
        )
        return session, game

    def start_game(self, session_id: str) -> LiveDraftGame:
        """Start drafting the session's current (pending) game."""
        session = self.repository.get_session(session_id)
        game = self._current_game(session)
        if game is None:
            raise NotFound(f"Game {session.current_game_number} of session {session_id} not found")
        previous = None
        if game.game_number > 1:
            previous = self.repository.get_game_by_number(session_id, game.game_number - 1)

        started = machine.start_game(session, game, previous)
        started = self.repository.save_game(started)

        diagnostics = DraftDiagnostics(
            Path(self.settings.diagnostics_dir), enabled=self.settings.draft_diagnostics
        )
        diagnostics.start_game(session, started)
        self._diagnostics[started.id] = diagnostics

        first_budget = processor.turn_remaining(session, started, started.turn_started_at)
        self._publish(session_id, game_state_event(started), timer_event(started, first_budget))
        logger.info(f"Game {started.game_number} of session {session_id} is drafting")
        return started

    def pause(self, session_id: str) -> LiveDraftSession:
        session = machine.pause_session(self.repository.get_session(session_id))
        logger.info(f"Session {session_id} paused")
        return self._save_session(session)

    def resume(self, session_id: str) -> LiveDraftSession:
        session = self.repository.get_session(session_id)
        session, game = machine.resume_session(session, self._current_game(session))
        if game is not None:
            game = self.repository.save_game(game)
            self._publish(session_id, game_state_event(game))
        logger.info(f"Session {session_id} resumed")
        return self._save_session(session)

    def cancel(self, session_id: str) -> LiveDraftSession:
        session = machine.cancel_session(self.repository.get_session(session_id))
        logger.info(f"Session {session_id} cancelled")
        return self._save_session(session)

    def end_session(self, session_id: str) -> LiveDraftSession:
        """Finish the series early; unstarted games are dropped."""
        session = self.repository.get_session(session_id)
        if session.status not in (SessionStatus.IN_PROGRESS, SessionStatus.PAUSED):
            raise InvalidPhaseState(f"Session is {session.status.value}")
        games = self.repository.list_games(session_id)
        if any(g.status is GameStatus.DRAFTING for g in games):
            raise InvalidPhaseState("Finish the current draft before ending the session")

        self.repository.delete_pending_games(session_id)
        completed = sum(1 for g in games if g.status in (GameStatus.COMPLETED, GameStatus.EDITING))
        session = machine.complete_session(session, completed_games=completed)
        logger.info(f"Session {session_id} ended after {completed} game(s)")
        return self._save_session(session)

    def extend_series(self, session_id: str) -> LiveDraftSession:
        """Add one game to the series (up to the configured maximum)."""
        session = self.repository.get_session(session_id)
        session = machine.extend_series(session, self.settings.max_planned_games)
        self._save_session(session)
        logger.info(f"Session {session_id} extended to {session.planned_games} games")
        return session

    # ------------------------------------------------------------------
    # Draft actions
    # ------------------------------------------------------------------

    def submit_action(
        self,
        game_id: str,
        team: TeamSide,
        champion_id: Optional[str],
        performed_by: Optional[str] = None,
    ) -> ActionResult:
        """Ban or pick for a team at the game's current step.

        Raises:
            OutOfTurn, ChampionUnavailable, InvalidPhaseState: rule violations
        """
        game, session = self._game_and_session(game_id)
        ledger = self.repository.get_unavailable(session.id)
        diagnostics = self._diagnostics_for(game_id)
        try:
            outcome = processor.apply_action(
                session, game, TeamSide(team), champion_id, ledger, performed_by=performed_by
            )
        except SlotAlreadyFilled:
            return self._discard(game_id, game.current_action_index, "SlotAlreadyFilled")
        except LiveDraftError as e:
            if diagnostics is not None:
                diagnostics.log_rejection(TeamSide(team).value, champion_id, type(e).__name__, e.message)
            raise
        return self._commit(session, outcome)

    def apply_timeout(
        self,
        game_id: str,
        performed_by: Optional[str] = None,
        grace_seconds: float = 0.0,
        now: Optional[datetime] = None,
    ) -> ActionResult:
        """Resolve an expired turn with no selection.

        Raises:
            TimerNotExpired: The turn still has time left
        """
        game, session = self._game_and_session(game_id)
        try:
            outcome = processor.apply_timeout(
                session, game, performed_by=performed_by, now=now, grace_seconds=grace_seconds
            )
        except SlotAlreadyFilled:
            return self._discard(game_id, game.current_action_index, "SlotAlreadyFilled")
        return self._commit(session, outcome)

    def _discard(self, game_id: str, expected_index: int, reason: str) -> ActionResult:
        logger.debug(f"Discarded stale action {expected_index} for game {game_id} ({reason})")
        diagnostics = self._diagnostics_for(game_id)
        if diagnostics is not None:
            diagnostics.log_race(expected_index, reason)
        return ActionResult(applied=False, game=self.repository.get_game(game_id))

    def _commit(self, session: LiveDraftSession, outcome: processor.ActionOutcome) -> ActionResult:
        try:
            game = self.repository.commit_action(outcome)
        except (StaleWrite, SlotAlreadyFilled) as e:
            return self._discard(outcome.game.id, outcome.expected_index, type(e).__name__)

        diagnostics = self._diagnostics_for(game.id)
        if diagnostics is not None:
            diagnostics.log_action(outcome.action)
        self._publish(session.id, *events_for_action(outcome.action, game))
        if outcome.completed:
            self._on_game_completed(game)
        return ActionResult(applied=True, game=game, action=outcome.action)

    def _on_game_completed(self, game: LiveDraftGame) -> None:
        session = self.repository.get_session(game.session_id)
        games = self.repository.list_games(session.id)
        completion = machine.on_game_completed(
            session, game, games, policy=self.settings.series_clinch_policy
        )
        added = self.repository.add_unavailable(completion.ledger_entries)
        if completion.next_game is not None:
            self.repository.create_game(completion.next_game)
        self._save_session(completion.session)
        self._close_diagnostics(game.id)

        if completion.series_completed:
            logger.info(f"Session {session.id} completed after game {game.game_number}")
        else:
            logger.info(
                f"Game {game.game_number} of session {session.id} completed "
                f"({added} ledger entries), game {completion.next_game.game_number} pending"
            )

    def hover(
        self,
        game_id: str,
        team: TeamSide,
        champion_id: Optional[str],
        exclude: Optional[str] = None,
    ) -> Optional[HoverEvent]:
        """Broadcast a captain's hovered champion; ignored off-turn or outside drafting."""
        game = self.repository.get_game(game_id)
        side = game.side_of(TeamSide(team))
        if game.status is not GameStatus.DRAFTING or game.current_turn is not side:
            return None
        event = HoverEvent(game_id=game.id, team=side, champion_id=champion_id)
        self.hub.publish(game.session_id, event, exclude=exclude)
        return event

    # ------------------------------------------------------------------
    # Results and corrections
    # ------------------------------------------------------------------

    def record_game_result(self, game_id: str, winner: DraftSide) -> LiveDraftGame:
        """Record (or correct) the winner of a completed game.

        Under the majority policy a clinching result completes the session
        and drops the unstarted next game.
        """
        game, session = self._game_and_session(game_id)
        if session.status is SessionStatus.CANCELLED:
            raise InvalidPhaseState("Session is cancelled")
        game = machine.record_winner(game, DraftSide(winner))
        game = self.repository.save_game(game)
        self._publish(session.id, game_state_event(game))

        games = self.repository.list_games(session.id)
        score = get_series_score(games)
        logger.info(
            f"Game {game.game_number} of session {session.id} won by {game.winner.value} "
            f"(series {score.team1}-{score.team2})"
        )

        if session.status.is_terminal:
            return game
        if is_series_clinched(score, session.planned_games, self.settings.series_clinch_policy):
            if any(g.status is GameStatus.DRAFTING for g in games):
                return game
            self.repository.delete_pending_games(session.id)
            completed = sum(1 for g in games if g.status is not GameStatus.PENDING)
            self._save_session(machine.complete_session(session, completed_games=completed))
            leader = series_leader(score)
            logger.info(
                f"Session {session.id} clinched {score.team1}-{score.team2} "
                f"by {session.team_name(leader)}"
            )
        return game

    def begin_edit(self, game_id: str) -> LiveDraftGame:
        game, session = self._game_and_session(game_id)
        game = self.repository.save_game(processor.begin_edit(game))
        self._publish(session.id, game_state_event(game))
        return game

    def finish_edit(self, game_id: str) -> LiveDraftGame:
        game, session = self._game_and_session(game_id)
        game = self.repository.save_game(processor.finish_edit(game))
        self._publish(session.id, game_state_event(game))
        return game

    def _ledger_for_correction(
        self,
        session: LiveDraftSession,
        game: LiveDraftGame,
        slot: str,
        champion_id: str,
    ) -> None:
        """A corrected slot of a finished game closes the new champion too."""
        if game.status not in (GameStatus.COMPLETED, GameStatus.EDITING):
            return
        side, action_type, _ = parse_slot_name(slot)
        entry = ledger_entry_for_slot(session, game, side, action_type, champion_id)
        if entry is not None:
            self.repository.add_unavailable([entry])

    def edit_slot(self, game_id: str, slot: str, champion_id: str) -> LiveDraftGame:
        """Correct one slot of a game in editing; the action log is untouched."""
        game, session = self._game_and_session(game_id)
        game, edit = processor.edit_slot(game, slot, champion_id)
        game = self.repository.save_game(game)
        self._ledger_for_correction(session, game, slot, champion_id)
        self._publish(session.id, slot_edited_event(game, edit), game_state_event(game))
        logger.info(f"Game {game.id} slot {slot}: {edit.original} -> {edit.edited}")
        return game

    def fill_timed_out_slot(
        self,
        game_id: str,
        slot: str,
        champion_id: str,
        team: Optional[TeamSide] = None,
    ) -> LiveDraftGame:
        """Put a real champion into a slot that timed out.

        When ``team`` is given it must be the team playing the slot's side.
        """
        for _ in range(3):
            game, session = self._game_and_session(game_id)
            if team is not None:
                try:
                    side, _, _ = parse_slot_name(slot)
                except ValueError as e:
                    raise InvalidRequest(str(e))
                if game.team_on(side) is not TeamSide(team):
                    raise InvalidRequest(f"{slot} belongs to the other team")

            ledger = self.repository.get_unavailable(session.id)
            updated, edit = processor.fill_timed_out_slot(session, game, slot, champion_id, ledger)
            try:
                updated = self.repository.save_game(updated, expected_version=game.version)
            except StaleWrite:
                logger.debug(f"Game {game_id} changed during slot fill, retrying")
                continue

            self._ledger_for_correction(session, updated, slot, champion_id)
            diagnostics = self._diagnostics_for(game_id)
            if diagnostics is not None:
                diagnostics.log_edit(edit.slot, edit.original, edit.edited)
            self._publish(session.id, slot_edited_event(updated, edit), game_state_event(updated))
            logger.info(f"Game {game_id} timed-out slot {slot} filled with {champion_id}")
            return updated
        raise InvalidPhaseState("Game kept changing, try again")

    # ------------------------------------------------------------------
    # Chat, ledger, score
    # ------------------------------------------------------------------

    def send_message(
        self,
        session_id: str,
        display_name: str,
        content: str,
        user_id: Optional[str] = None,
    ) -> ChatMessage:
        self.repository.get_session(session_id)
        content = (content or "").strip()
        if not content:
            raise InvalidRequest("Message cannot be empty")
        if len(content) > self.settings.chat_message_max_length:
            raise InvalidRequest(
                f"Message must be {self.settings.chat_message_max_length} characters or less"
            )
        if self.repository.count_messages(session_id) >= self.settings.chat_message_cap:
            raise InvalidRequest(
                f"Chat limit reached ({self.settings.chat_message_cap} messages per session)"
            )

        message = self.repository.add_message(
            ChatMessage(
                id=new_id("msg_"),
                session_id=session_id,
                display_name=(display_name or "").strip() or "Anonymous",
                content=content,
                user_id=user_id,
            )
        )
        self._publish(session_id, chat_event(message))
        return message

    def list_messages(self, session_id: str) -> list[ChatMessage]:
        self.repository.get_session(session_id)
        return self.repository.list_messages(session_id)

    def get_ledger(self, session_id: str) -> dict:
        """Series ledger, its per-champion index and each team's blocked set."""
        session = self.repository.get_session(session_id)
        ledger = self.repository.get_unavailable(session_id)
        game = self._current_game(session) or machine.new_game(session, 0, TeamSide.TEAM1)
        return {
            "draft_mode": session.draft_mode.value,
            "entries": [uc.to_dict() for uc in ledger],
            "by_champion": UnavailableIndex.from_ledger(ledger).to_dict(),
            "blocked": {
                team.value: sorted(unavailable_champions(session.draft_mode, game, ledger, team))
                for team in TeamSide
            },
        }

    def get_score(self, session_id: str) -> SeriesScore:
        self.repository.get_session(session_id)
        return get_series_score(self.repository.list_games(session_id))
