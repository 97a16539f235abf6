"""Validate and apply draft actions against a game.

Every function here is pure: it reads a session/game snapshot and returns a
new game value plus the records to persist. Nothing is written until the
service commits the outcome with a conditional update.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

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
    DraftStep,
    GameStatus,
    SessionStatus,
    TeamSide,
)
from live_draft.models.session import (
    DraftActionRecord,
    EditedPick,
    LiveDraftGame,
    LiveDraftSession,
    UnavailableChampion,
)
from live_draft.services.champion_availability import is_champion_unavailable
from live_draft.services.draft_sequence import (
    DRAFT_LENGTH,
    parse_slot_name,
    slot_key,
    step_at,
    time_budget,
)
from live_draft.utils import new_id, utcnow


@dataclass
class ActionOutcome:
    """Result of applying one step, ready to be committed."""

    game: LiveDraftGame  # New game state
    action: DraftActionRecord  # Row to append
    expected_index: int  # Index the outcome was prepared against
    expected_version: int  # Stored row version the outcome was prepared against
    completed: bool  # True if this step finished the draft


def _current_step(session: LiveDraftSession, game: LiveDraftGame) -> DraftStep:
    """Check the game accepts an action and return the step it is on."""
    if game.status is not GameStatus.DRAFTING:
        raise InvalidPhaseState(f"Game {game.game_number} is {game.status.value}, not drafting")
    if session.status is not SessionStatus.IN_PROGRESS:
        raise InvalidPhaseState(f"Session is {session.status.value}")
    step = step_at(game.current_action_index)
    if step is None:
        raise InvalidPhaseState(f"Action index {game.current_action_index} is out of range")
    return step


def _advance(
    game: LiveDraftGame,
    step: DraftStep,
    value: str,
    action_type: DraftActionType,
    performed_by: Optional[str],
    now: datetime,
) -> ActionOutcome:
    """Write the slot, build the action record and move to the next step."""
    key = step.slot_key
    if game.slots(key)[step.slot] is not None:
        raise SlotAlreadyFilled(f"{step.slot_name} is already filled")

    new_game = game.clone()
    new_game.slots(key)[step.slot] = value

    action = DraftActionRecord(
        id=new_id("act_"),
        game_id=game.id,
        action_index=step.index,
        action_type=action_type,
        team=step.turn,
        champion_id=None if action_type is DraftActionType.TIMEOUT else value,
        performed_by=performed_by,
        created_at=now,
    )

    next_index = step.index + 1
    next_step = step_at(next_index)
    new_game.current_action_index = next_index
    new_game.updated_at = now
    if next_step is None:
        new_game.status = GameStatus.COMPLETED
        new_game.current_phase = None
        new_game.current_turn = None
        new_game.completed_at = now
    else:
        new_game.current_phase = next_step.phase
        new_game.current_turn = next_step.turn
        new_game.turn_started_at = now

    return ActionOutcome(
        game=new_game,
        action=action,
        expected_index=step.index,
        expected_version=game.version,
        completed=next_step is None,
    )


def apply_action(
    session: LiveDraftSession,
    game: LiveDraftGame,
    team: TeamSide,
    champion_id: Optional[str],
    ledger: Iterable[UnavailableChampion],
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ActionOutcome:
    """Validate and apply a ban or pick submitted by a team.

    Args:
        session: Owning session (mode, status)
        game: Game being drafted
        team: Team submitting the action
        champion_id: Champion to ban/pick
        ledger: Unavailable champion records of the series
        performed_by: Participant or user id recorded on the action
        now: Clock override

    Returns:
        ActionOutcome with the advanced game and the action record

    Raises:
        InvalidPhaseState: Game not drafting, session not running, index out of range
        OutOfTurn: The team's side does not hold the turn
        ChampionUnavailable: Champion already used or locked by series rules
        SlotAlreadyFilled: The step's slot already holds a value
    """
    now = now or utcnow()
    team = TeamSide(team)
    step = _current_step(session, game)

    side = game.side_of(team)
    if side is not game.current_turn:
        raise OutOfTurn(f"It is {game.current_turn.value}'s turn, not {side.value}'s")

    if not champion_id or champion_id == NONE_CHAMPION:
        raise ChampionUnavailable("A champion is required for a ban or pick")
    if is_champion_unavailable(champion_id, session.draft_mode, game, ledger, team):
        raise ChampionUnavailable(f"Champion '{champion_id}' is not available")

    return _advance(game, step, champion_id, step.action_type, performed_by, now)


def turn_remaining(
    session: LiveDraftSession,
    game: LiveDraftGame,
    now: Optional[datetime] = None,
) -> Optional[float]:
    """Seconds left on the current turn (negative once overdue).

    Returns None when the game has no running turn.
    """
    step = step_at(game.current_action_index)
    if game.status is not GameStatus.DRAFTING or step is None or game.turn_started_at is None:
        return None
    now = now or utcnow()
    budget = time_budget(step, session.ban_time_seconds, session.pick_time_seconds)
    elapsed = (now - game.turn_started_at).total_seconds()
    return budget - elapsed


def is_turn_expired(
    session: LiveDraftSession,
    game: LiveDraftGame,
    now: Optional[datetime] = None,
    grace_seconds: float = 0.0,
) -> bool:
    remaining = turn_remaining(session, game, now)
    return remaining is not None and remaining <= -grace_seconds


def apply_timeout(
    session: LiveDraftSession,
    game: LiveDraftGame,
    performed_by: Optional[str] = None,
    now: Optional[datetime] = None,
    grace_seconds: float = 0.0,
    require_expired: bool = True,
) -> ActionOutcome:
    """Apply a timeout (no selection) at the current step.

    Any participant may submit it once the turn budget has elapsed; turn
    ownership is not checked so a disconnected captain cannot stall the draft.

    Raises:
        InvalidPhaseState: Game not drafting or session not running
        TimerNotExpired: Turn still has time left and ``require_expired`` is set
        SlotAlreadyFilled: The step's slot already holds a value
    """
    now = now or utcnow()
    step = _current_step(session, game)
    if require_expired and not is_turn_expired(session, game, now, grace_seconds):
        raise TimerNotExpired(f"Turn {step.index} has not timed out yet")
    return _advance(game, step, NONE_CHAMPION, DraftActionType.TIMEOUT, performed_by, now)


# ---------------------------------------------------------------------------
# Post-completion edits
# ---------------------------------------------------------------------------


def begin_edit(game: LiveDraftGame, now: Optional[datetime] = None) -> LiveDraftGame:
    """Move a completed game into editing."""
    if game.status is not GameStatus.COMPLETED:
        raise InvalidPhaseState(f"Only completed games can be edited (game is {game.status.value})")
    new_game = game.clone()
    new_game.status = GameStatus.EDITING
    new_game.updated_at = now or utcnow()
    return new_game


def finish_edit(game: LiveDraftGame, now: Optional[datetime] = None) -> LiveDraftGame:
    """Return an editing game to completed."""
    if game.status is not GameStatus.EDITING:
        raise InvalidPhaseState(f"Game is not being edited (game is {game.status.value})")
    new_game = game.clone()
    new_game.status = GameStatus.COMPLETED
    new_game.updated_at = now or utcnow()
    return new_game


def _write_edit(
    game: LiveDraftGame,
    slot: str,
    champion_id: str,
    now: datetime,
) -> tuple[LiveDraftGame, EditedPick]:
    side, action_type, index = parse_slot_name(slot)
    key = slot_key(side, action_type)
    new_game = game.clone()
    original = new_game.slots(key)[index]
    new_game.slots(key)[index] = champion_id
    edit = EditedPick(slot=slot, original=original, edited=champion_id, at=now.isoformat())
    new_game.edited_picks.append(edit)
    new_game.updated_at = now
    return new_game, edit


def edit_slot(
    game: LiveDraftGame,
    slot: str,
    champion_id: str,
    now: Optional[datetime] = None,
) -> tuple[LiveDraftGame, EditedPick]:
    """Correct one slot of a game in editing.

    The action log is left untouched; the change is recorded in
    ``edited_picks``.

    Raises:
        InvalidPhaseState: Game is not in editing
        InvalidRequest: Malformed slot name or empty champion
        ChampionUnavailable: Champion already sits in another slot of the game
    """
    now = now or utcnow()
    if game.status is not GameStatus.EDITING:
        raise InvalidPhaseState(f"Game is not being edited (game is {game.status.value})")
    if not champion_id or champion_id == NONE_CHAMPION:
        raise InvalidRequest("A champion is required")
    try:
        side, action_type, index = parse_slot_name(slot)
    except ValueError as e:
        raise InvalidRequest(str(e))
    if game.slots(slot_key(side, action_type))[index] == champion_id:
        raise InvalidRequest(f"{slot} already holds '{champion_id}'")
    if champion_id in game.champions_in_game:
        raise ChampionUnavailable(f"Champion '{champion_id}' is already used in this game")
    return _write_edit(game, slot, champion_id, now)


def fill_timed_out_slot(
    session: LiveDraftSession,
    game: LiveDraftGame,
    slot: str,
    champion_id: str,
    ledger: Iterable[UnavailableChampion],
    now: Optional[datetime] = None,
) -> tuple[LiveDraftGame, EditedPick]:
    """Replace a timed-out slot with a real champion.

    Allowed while drafting and after completion. Availability is checked for
    the team on the slot's side with the series rules.

    Raises:
        InvalidPhaseState: Game has not started
        InvalidRequest: Malformed slot or slot not timed out
        ChampionUnavailable: Champion used in this game or locked by series rules
    """
    now = now or utcnow()
    if game.status is GameStatus.PENDING:
        raise InvalidPhaseState("Game has not started")
    if not champion_id or champion_id == NONE_CHAMPION:
        raise InvalidRequest("A champion is required")
    try:
        side, action_type, index = parse_slot_name(slot)
    except ValueError as e:
        raise InvalidRequest(str(e))
    if game.slots(slot_key(side, action_type))[index] != NONE_CHAMPION:
        raise InvalidRequest("Slot is not timed out")
    team = game.team_on(side)
    if is_champion_unavailable(champion_id, session.draft_mode, game, ledger, team):
        raise ChampionUnavailable(f"Champion '{champion_id}' is not available")
    return _write_edit(game, slot, champion_id, now)


def draft_is_consistent(game: LiveDraftGame) -> bool:
    """Check the index matches the number of filled slots."""
    return game.filled_slot_count == min(game.current_action_index, DRAFT_LENGTH)
