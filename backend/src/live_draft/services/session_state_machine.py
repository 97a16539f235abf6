"""Session and game lifecycle transitions.

Session: lobby -> in_progress -> {paused, completed, cancelled};
paused -> in_progress. Game: pending -> drafting -> completed, with
completed <-> editing for corrections.

All functions take snapshots and return new values; the service persists
them.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Optional

from live_draft.errors import InvalidPhaseState, InvalidRequest, SessionNotReady
from live_draft.models.draft import (
    DraftMode,
    DraftSide,
    GameStatus,
    SessionStatus,
    TeamSide,
)
from live_draft.models.session import LiveDraftGame, LiveDraftSession, UnavailableChampion
from live_draft.services.draft_sequence import step_at
from live_draft.services.series_scoreboard import (
    ClinchPolicy,
    get_series_score,
    is_series_clinched,
    ledger_entries_for_game,
)
from live_draft.utils import new_id, new_invite_token, utcnow

MAX_NAME_LENGTH = 30
MAX_PLANNED_GAMES = 5


def _check_name(label: str, value: Optional[str], max_length: int) -> None:
    if value and len(value) > max_length:
        raise InvalidRequest(f"{label} must be {max_length} characters or less")


def create_session(
    name: str,
    draft_mode: DraftMode = DraftMode.NORMAL,
    planned_games: int = 1,
    ban_time_seconds: int = 30,
    pick_time_seconds: int = 30,
    team1_name: Optional[str] = None,
    team2_name: Optional[str] = None,
    created_by: Optional[str] = None,
    linked_draft_id: Optional[str] = None,
    linked_team_id: Optional[str] = None,
    linked_enemy_id: Optional[str] = None,
    max_name_length: int = MAX_NAME_LENGTH,
    max_planned_games: int = MAX_PLANNED_GAMES,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    """Build a new session in the lobby.

    The creator is not made captain; captains claim a team in the lobby.
    """
    now = now or utcnow()
    _check_name("Session name", name, max_name_length)
    _check_name("Team name", team1_name, max_name_length)
    _check_name("Team name", team2_name, max_name_length)
    if not 1 <= planned_games <= max_planned_games:
        raise InvalidRequest(f"Planned games must be between 1 and {max_planned_games}")
    if ban_time_seconds <= 0 or pick_time_seconds <= 0:
        raise InvalidRequest("Time budgets must be positive")

    return LiveDraftSession(
        id=new_id("ses_"),
        name=name,
        created_by=created_by,
        draft_mode=DraftMode(draft_mode),
        planned_games=planned_games,
        ban_time_seconds=ban_time_seconds,
        pick_time_seconds=pick_time_seconds,
        invite_token=new_invite_token(),
        team1_name=team1_name or "Team 1",
        team2_name=team2_name or "Team 2",
        team1_linked_draft_id=linked_draft_id,
        team1_linked_team_id=linked_team_id,
        team1_linked_enemy_id=linked_enemy_id,
        status=SessionStatus.LOBBY,
        current_game_number=1,
        created_at=now,
        updated_at=now,
    )


def _require_open(session: LiveDraftSession) -> None:
    if session.status.is_terminal:
        raise InvalidPhaseState(f"Session is {session.status.value}")


def _set_team_fields(session: LiveDraftSession, team: TeamSide, now: datetime, **values) -> LiveDraftSession:
    prefix = team.value
    return replace(session, updated_at=now, **{f"{prefix}_{k}": v for k, v in values.items()})


# ---------------------------------------------------------------------------
# Captains, sides and ready flags
# ---------------------------------------------------------------------------


def assign_captain(
    session: LiveDraftSession,
    team: TeamSide,
    display_name: str,
    user_id: Optional[str] = None,
    avatar_url: Optional[str] = None,
    role: Optional[str] = None,
    max_name_length: int = MAX_NAME_LENGTH,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    """Claim a team's captain slot.

    A slot held by someone else is refused; re-joining with the same
    identity (user id, or display name for anonymous captains) is allowed.
    """
    now = now or utcnow()
    _require_open(session)
    display_name = (display_name or "").strip()
    if not display_name:
        raise InvalidRequest("Display name is required")
    _check_name("Display name", display_name, max_name_length)

    existing_id = session.captain_id(team)
    existing_name = session.captain_display_name(team)
    taken = InvalidRequest(f"{session.team_name(team)} already has a captain")
    if existing_id and existing_id != user_id:
        raise taken
    if not existing_id and existing_name and existing_name != display_name:
        raise taken

    other = team.opposite
    if user_id and session.captain_id(other) == user_id:
        raise InvalidRequest("You are already captain of the other team")
    if not user_id and session.captain_display_name(other) == display_name:
        raise InvalidRequest("You are already captain of the other team")

    return _set_team_fields(
        session,
        team,
        now,
        captain_id=user_id,
        captain_display_name=display_name,
        captain_avatar_url=avatar_url,
        captain_role=role,
    )


def release_captain(
    session: LiveDraftSession,
    team: TeamSide,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    """Free a team's captain slot (leave or kick); side choice and ready reset."""
    now = now or utcnow()
    _require_open(session)
    return _set_team_fields(
        session,
        team,
        now,
        captain_id=None,
        captain_display_name=None,
        captain_avatar_url=None,
        captain_role=None,
        side=None,
        ready=False,
    )


def _require_side_choice_open(session: LiveDraftSession, current_game: Optional[LiveDraftGame]) -> None:
    _require_open(session)
    if current_game is not None and current_game.status is not GameStatus.PENDING:
        raise InvalidPhaseState("Sides can only change between games")


def select_side(
    session: LiveDraftSession,
    team: TeamSide,
    side: DraftSide,
    current_game: Optional[LiveDraftGame] = None,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    """A captain picks blue or red for their team; their ready flag resets."""
    now = now or utcnow()
    _require_side_choice_open(session, current_game)
    side = DraftSide(side)
    if not session.has_captain(team):
        raise InvalidRequest(f"{session.team_name(team)} has no captain")
    if session.side_of(team.opposite) is side:
        raise InvalidRequest("This side is already taken by the other team")
    return _set_team_fields(session, team, now, side=side, ready=False)


def clear_sides(
    session: LiveDraftSession,
    current_game: Optional[LiveDraftGame] = None,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    """Undo both side choices and ready flags."""
    now = now or utcnow()
    _require_side_choice_open(session, current_game)
    return replace(
        session,
        team1_side=None,
        team2_side=None,
        team1_ready=False,
        team2_ready=False,
        updated_at=now,
    )


def set_ready(
    session: LiveDraftSession,
    team: TeamSide,
    ready: bool,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    now = now or utcnow()
    _require_open(session)
    if ready:
        if not session.has_captain(team):
            raise SessionNotReady(f"{session.team_name(team)} has no captain")
        if session.side_of(team) is None:
            raise SessionNotReady("Choose a side before readying up")
    return _set_team_fields(session, team, now, ready=ready)


def _require_ready(session: LiveDraftSession) -> None:
    if not session.sides_complementary:
        raise SessionNotReady("Both teams must choose opposite sides")
    if not session.both_ready:
        raise SessionNotReady("Both teams must be ready")


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


def new_game(
    session: LiveDraftSession,
    game_number: int,
    blue_side_team: TeamSide,
    now: Optional[datetime] = None,
) -> LiveDraftGame:
    now = now or utcnow()
    return LiveDraftGame(
        id=new_id("game_"),
        session_id=session.id,
        game_number=game_number,
        blue_side_team=blue_side_team,
        status=GameStatus.PENDING,
        created_at=now,
        updated_at=now,
    )


def start_session(
    session: LiveDraftSession,
    now: Optional[datetime] = None,
) -> tuple[LiveDraftSession, LiveDraftGame]:
    """Move lobby -> in_progress and create Game 1 as pending.

    Raises:
        InvalidPhaseState: Session is not in the lobby
        SessionNotReady: Sides not complementary or a team is not ready
    """
    now = now or utcnow()
    if session.status is not SessionStatus.LOBBY:
        raise InvalidPhaseState(f"Session is {session.status.value}, not in lobby")
    _require_ready(session)
    started = replace(
        session,
        status=SessionStatus.IN_PROGRESS,
        started_at=now,
        current_game_number=1,
        updated_at=now,
    )
    return started, new_game(started, 1, session.blue_side_team, now)


def start_game(
    session: LiveDraftSession,
    game: LiveDraftGame,
    previous_game: Optional[LiveDraftGame] = None,
    now: Optional[datetime] = None,
) -> LiveDraftGame:
    """Move a pending game to drafting and start the clock on index 0.

    Raises:
        InvalidPhaseState: Session not running, game not pending, or the
            previous game has not completed
        SessionNotReady: Sides not complementary or a team is not ready
    """
    now = now or utcnow()
    if session.status is not SessionStatus.IN_PROGRESS:
        raise InvalidPhaseState(f"Session is {session.status.value}")
    if game.status is not GameStatus.PENDING:
        raise InvalidPhaseState(f"Game {game.game_number} is {game.status.value}, not pending")
    if previous_game is not None and previous_game.status is not GameStatus.COMPLETED:
        raise InvalidPhaseState(f"Game {previous_game.game_number} has not completed")
    _require_ready(session)

    first = step_at(0)
    started = game.clone()
    started.blue_side_team = session.blue_side_team
    started.status = GameStatus.DRAFTING
    started.current_phase = first.phase
    started.current_turn = first.turn
    started.current_action_index = 0
    started.started_at = now
    started.turn_started_at = now
    started.updated_at = now
    return started


def pause_session(session: LiveDraftSession, now: Optional[datetime] = None) -> LiveDraftSession:
    if session.status is not SessionStatus.IN_PROGRESS:
        raise InvalidPhaseState(f"Only running sessions can pause (session is {session.status.value})")
    return replace(session, status=SessionStatus.PAUSED, updated_at=now or utcnow())


def resume_session(
    session: LiveDraftSession,
    drafting_game: Optional[LiveDraftGame] = None,
    now: Optional[datetime] = None,
) -> tuple[LiveDraftSession, Optional[LiveDraftGame]]:
    """Resume a paused session; the current turn's clock restarts."""
    now = now or utcnow()
    if session.status is not SessionStatus.PAUSED:
        raise InvalidPhaseState(f"Session is {session.status.value}, not paused")
    resumed = replace(session, status=SessionStatus.IN_PROGRESS, updated_at=now)
    game = None
    if drafting_game is not None and drafting_game.status is GameStatus.DRAFTING:
        game = drafting_game.clone()
        game.turn_started_at = now
        game.updated_at = now
    return resumed, game


def cancel_session(session: LiveDraftSession, now: Optional[datetime] = None) -> LiveDraftSession:
    """Abandon the session. Terminal; earlier ledger entries stay."""
    _require_open(session)
    return replace(session, status=SessionStatus.CANCELLED, updated_at=now or utcnow())


def complete_session(
    session: LiveDraftSession,
    completed_games: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    """Mark the series finished.

    When ``completed_games`` is given, planned and current game counts are
    synced to it so history reads e.g. 3 / 3 rather than 3 / 5.
    """
    now = now or utcnow()
    _require_open(session)
    updates = {"status": SessionStatus.COMPLETED, "completed_at": now, "updated_at": now}
    if completed_games is not None and completed_games > 0:
        updates["planned_games"] = completed_games
        updates["current_game_number"] = completed_games
    return replace(session, **updates)


def extend_series(
    session: LiveDraftSession,
    max_planned_games: int = MAX_PLANNED_GAMES,
    now: Optional[datetime] = None,
) -> LiveDraftSession:
    """Add one game to the series."""
    _require_open(session)
    if session.planned_games >= max_planned_games:
        raise InvalidRequest(f"Series cannot exceed {max_planned_games} games")
    return replace(session, planned_games=session.planned_games + 1, updated_at=now or utcnow())


# ---------------------------------------------------------------------------
# Game completion and results
# ---------------------------------------------------------------------------


@dataclass
class GameCompletion:
    """Everything that follows from a game finishing its draft."""

    session: LiveDraftSession
    ledger_entries: list[UnavailableChampion] = field(default_factory=list)
    next_game: Optional[LiveDraftGame] = None
    series_completed: bool = False


def series_finished(
    session: LiveDraftSession,
    games: Iterable[LiveDraftGame],
    last_game_number: int,
    policy: ClinchPolicy = "play_all",
) -> bool:
    if last_game_number >= session.planned_games:
        return True
    return is_series_clinched(get_series_score(games), session.planned_games, policy)


def on_game_completed(
    session: LiveDraftSession,
    game: LiveDraftGame,
    games: Iterable[LiveDraftGame],
    policy: ClinchPolicy = "play_all",
    now: Optional[datetime] = None,
) -> GameCompletion:
    """Work out the ledger, ready reset and next game after a draft completes.

    Args:
        session: Owning session
        game: The game that just completed
        games: All games of the session (including ``game``)
        policy: Series clinch policy

    Returns:
        GameCompletion with the updated session, ledger entries and either a
        pending next game (sides swapped) or ``series_completed``
    """
    now = now or utcnow()
    games = [g if g.id != game.id else game for g in games]
    ledger = ledger_entries_for_game(session, game, now)

    # Captains re-ready for every game
    updated = replace(session, team1_ready=False, team2_ready=False, updated_at=now)

    if series_finished(updated, games, game.game_number, policy):
        return GameCompletion(
            session=complete_session(updated, now=now),
            ledger_entries=ledger,
            series_completed=True,
        )

    next_blue = game.blue_side_team.opposite
    next_number = game.game_number + 1
    # Default side assignment swaps; captains may still re-pick before readying
    team1_side = DraftSide.BLUE if next_blue is TeamSide.TEAM1 else DraftSide.RED
    updated = replace(
        updated,
        current_game_number=next_number,
        team1_side=team1_side,
        team2_side=team1_side.opposite,
    )
    return GameCompletion(
        session=updated,
        ledger_entries=ledger,
        next_game=new_game(updated, next_number, next_blue, now),
    )


def record_winner(
    game: LiveDraftGame,
    winner: DraftSide,
    now: Optional[datetime] = None,
) -> LiveDraftGame:
    """Set (or correct) the winning side of a finished game."""
    if game.status not in (GameStatus.COMPLETED, GameStatus.EDITING):
        raise InvalidPhaseState(f"Game {game.game_number} has not completed")
    updated = game.clone()
    updated.winner = DraftSide(winner)
    updated.updated_at = now or utcnow()
    return updated
