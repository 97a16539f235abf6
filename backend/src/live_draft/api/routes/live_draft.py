"""REST endpoints for live draft sessions."""

from contextlib import contextmanager
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from live_draft.errors import (
    ChampionUnavailable,
    InvalidPhaseState,
    InvalidRequest,
    LiveDraftError,
    NotFound,
    OutOfTurn,
    SessionNotReady,
    TimerNotExpired,
)
from live_draft.services.live_draft_service import ActionResult, LiveDraftService

router = APIRouter(prefix="/api/live-draft", tags=["live-draft"])

_STATUS_CODES: dict[type, int] = {
    NotFound: 404,
    OutOfTurn: 409,
    InvalidPhaseState: 409,
    SessionNotReady: 409,
    ChampionUnavailable: 400,
    InvalidRequest: 400,
    TimerNotExpired: 400,
}

Team = Literal["team1", "team2"]
Side = Literal["blue", "red"]


def _status_code(error: LiveDraftError) -> int:
    for error_cls, code in _STATUS_CODES.items():
        if isinstance(error, error_cls):
            return code
    return 500


@contextmanager
def _draft_errors():
    """Translate engine errors into HTTP errors."""
    try:
        yield
    except LiveDraftError as e:
        raise HTTPException(status_code=_status_code(e), detail=e.message)


def _service(request: Request) -> LiveDraftService:
    return request.app.state.live_draft_service


def _action_response(result: ActionResult) -> dict:
    return {
        "applied": result.applied,
        "game": result.game.to_dict(),
        "action": result.action.to_dict() if result.action else None,
    }


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    name: str
    draft_mode: Literal["normal", "fearless", "ironman"] = "normal"
    planned_games: int = Field(default=1, ge=1)
    ban_time_seconds: Optional[int] = Field(default=None, gt=0)
    pick_time_seconds: Optional[int] = Field(default=None, gt=0)
    team1_name: Optional[str] = None
    team2_name: Optional[str] = None
    created_by: Optional[str] = None
    linked_draft_id: Optional[str] = None
    linked_team_id: Optional[str] = None
    linked_enemy_id: Optional[str] = None


class JoinRequest(BaseModel):
    display_name: Optional[str] = None
    user_id: Optional[str] = None
    team: Optional[Team] = None  # Omit to join as a spectator
    avatar_url: Optional[str] = None
    role: Optional[str] = None


class LeaveCaptainRequest(BaseModel):
    participant_id: str


class KickCaptainRequest(BaseModel):
    team: Team
    requested_by: Optional[str] = None


class ConnectionRequest(BaseModel):
    is_connected: bool


class SelectSideRequest(BaseModel):
    team: Team
    side: Side


class ReadyRequest(BaseModel):
    team: Team
    ready: bool = True


class ActionRequest(BaseModel):
    team: Team
    champion_id: str
    performed_by: Optional[str] = None


class TimeoutRequest(BaseModel):
    performed_by: Optional[str] = None


class ResultRequest(BaseModel):
    winner: Side


class EditSlotRequest(BaseModel):
    slot: str  # e.g. "blue_pick_3"
    champion_id: str


class FillSlotRequest(BaseModel):
    slot: str
    champion_id: str
    team: Optional[Team] = None


class MessageRequest(BaseModel):
    display_name: str
    content: str
    user_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.post("/sessions", status_code=201)
async def create_session(request: Request, body: CreateSessionRequest):
    """Create a new live draft session in the lobby."""
    with _draft_errors():
        session = _service(request).create_session(**body.model_dump())
    return session.to_dict()


@router.get("/sessions")
async def list_sessions(request: Request, status: Optional[str] = None, limit: int = 50):
    """List recent sessions."""
    return {"sessions": _service(request).list_sessions(status=status, limit=limit)}


@router.get("/sessions/{session_id}")
async def get_session(request: Request, session_id: str):
    """Full snapshot: session, games, current draft, ledger, score, chat."""
    with _draft_errors():
        return _service(request).get_snapshot(session_id)


@router.get("/invites/{invite_token}")
async def resolve_invite(request: Request, invite_token: str):
    with _draft_errors():
        return _service(request).get_session_by_invite(invite_token).to_dict()


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(request: Request, session_id: str, requested_by: Optional[str] = None):
    with _draft_errors():
        _service(request).delete_session(session_id, requested_by=requested_by)


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------


@router.post("/sessions/{session_id}/join", status_code=201)
async def join_session(request: Request, session_id: str, body: JoinRequest):
    """Join as a team captain (with ``team``) or as a spectator."""
    service = _service(request)
    with _draft_errors():
        if body.team is not None:
            participant = service.join_as_captain(
                session_id,
                body.team,
                body.display_name or "",
                user_id=body.user_id,
                avatar_url=body.avatar_url,
                role=body.role,
            )
        else:
            participant = service.join_as_spectator(
                session_id, display_name=body.display_name, user_id=body.user_id
            )
    return participant.to_dict()


@router.get("/sessions/{session_id}/participants")
async def list_participants(request: Request, session_id: str):
    with _draft_errors():
        participants = _service(request).list_participants(session_id)
    return {"participants": [p.to_dict() for p in participants]}


@router.post("/sessions/{session_id}/captain/leave")
async def leave_captain_role(request: Request, session_id: str, body: LeaveCaptainRequest):
    with _draft_errors():
        return _service(request).leave_captain_role(session_id, body.participant_id).to_dict()


@router.post("/sessions/{session_id}/captain/kick")
async def kick_captain(request: Request, session_id: str, body: KickCaptainRequest):
    with _draft_errors():
        session = _service(request).kick_captain(
            session_id, body.team, requested_by=body.requested_by
        )
    return session.to_dict()


@router.post("/participants/{participant_id}/connection")
async def update_connection(request: Request, participant_id: str, body: ConnectionRequest):
    with _draft_errors():
        return _service(request).update_connection(participant_id, body.is_connected).to_dict()


# ---------------------------------------------------------------------------
# Lobby and series control
# ---------------------------------------------------------------------------


@router.post("/sessions/{session_id}/sides")
async def select_side(request: Request, session_id: str, body: SelectSideRequest):
    with _draft_errors():
        return _service(request).select_side(session_id, body.team, body.side).to_dict()


@router.delete("/sessions/{session_id}/sides")
async def clear_sides(request: Request, session_id: str):
    with _draft_errors():
        return _service(request).clear_sides(session_id).to_dict()


@router.post("/sessions/{session_id}/ready")
async def set_ready(request: Request, session_id: str, body: ReadyRequest):
    with _draft_errors():
        return _service(request).set_ready(session_id, body.team, body.ready).to_dict()


@router.post("/sessions/{session_id}/start")
async def start_session(request: Request, session_id: str):
    """Leave the lobby; Game 1 is created pending."""
    with _draft_errors():
        session, game = _service(request).start_session(session_id)
    return {"session": session.to_dict(), "game": game.to_dict()}


@router.post("/sessions/{session_id}/pause")
async def pause_session(request: Request, session_id: str):
    with _draft_errors():
        return _service(request).pause(session_id).to_dict()


@router.post("/sessions/{session_id}/resume")
async def resume_session(request: Request, session_id: str):
    with _draft_errors():
        return _service(request).resume(session_id).to_dict()


@router.post("/sessions/{session_id}/cancel")
async def cancel_session(request: Request, session_id: str):
    with _draft_errors():
        return _service(request).cancel(session_id).to_dict()


@router.post("/sessions/{session_id}/end")
async def end_session(request: Request, session_id: str):
    with _draft_errors():
        return _service(request).end_session(session_id).to_dict()


@router.post("/sessions/{session_id}/extend")
async def extend_series(request: Request, session_id: str):
    with _draft_errors():
        return _service(request).extend_series(session_id).to_dict()


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


@router.post("/sessions/{session_id}/games/start")
async def start_game(request: Request, session_id: str):
    """Start drafting the current pending game."""
    with _draft_errors():
        return _service(request).start_game(session_id).to_dict()


@router.get("/games/{game_id}")
async def get_game(request: Request, game_id: str):
    service = _service(request)
    with _draft_errors():
        game = service.repository.get_game(game_id)
        actions = service.repository.list_actions(game_id)
    return {"game": game.to_dict(), "actions": [a.to_dict() for a in actions]}


@router.post("/games/{game_id}/actions")
async def submit_action(request: Request, game_id: str, body: ActionRequest):
    """Ban or pick for a team at the current step.

    ``applied`` is false when another submission for the same step won the
    race; the returned game is the stored state.
    """
    with _draft_errors():
        result = _service(request).submit_action(
            game_id, body.team, body.champion_id, performed_by=body.performed_by
        )
    return _action_response(result)


@router.post("/games/{game_id}/timeout")
async def submit_timeout(request: Request, game_id: str, body: TimeoutRequest):
    """Resolve an expired turn with no selection."""
    with _draft_errors():
        result = _service(request).apply_timeout(game_id, performed_by=body.performed_by)
    return _action_response(result)


@router.post("/games/{game_id}/result")
async def record_result(request: Request, game_id: str, body: ResultRequest):
    with _draft_errors():
        return _service(request).record_game_result(game_id, body.winner).to_dict()


@router.post("/games/{game_id}/edit/begin")
async def begin_edit(request: Request, game_id: str):
    with _draft_errors():
        return _service(request).begin_edit(game_id).to_dict()


@router.post("/games/{game_id}/edit")
async def edit_slot(request: Request, game_id: str, body: EditSlotRequest):
    with _draft_errors():
        return _service(request).edit_slot(game_id, body.slot, body.champion_id).to_dict()


@router.post("/games/{game_id}/edit/finish")
async def finish_edit(request: Request, game_id: str):
    with _draft_errors():
        return _service(request).finish_edit(game_id).to_dict()


@router.post("/games/{game_id}/fill")
async def fill_timed_out_slot(request: Request, game_id: str, body: FillSlotRequest):
    with _draft_errors():
        game = _service(request).fill_timed_out_slot(
            game_id, body.slot, body.champion_id, team=body.team
        )
    return game.to_dict()


# ---------------------------------------------------------------------------
# Chat, ledger, score
# ---------------------------------------------------------------------------


@router.post("/sessions/{session_id}/messages", status_code=201)
async def send_message(request: Request, session_id: str, body: MessageRequest):
    with _draft_errors():
        message = _service(request).send_message(
            session_id, body.display_name, body.content, user_id=body.user_id
        )
    return message.to_dict()


@router.get("/sessions/{session_id}/messages")
async def list_messages(request: Request, session_id: str):
    with _draft_errors():
        messages = _service(request).list_messages(session_id)
    return {"messages": [m.to_dict() for m in messages]}


@router.get("/sessions/{session_id}/ledger")
async def get_ledger(request: Request, session_id: str):
    """Unavailable champions of the series and each team's blocked set."""
    with _draft_errors():
        return _service(request).get_ledger(session_id)


@router.get("/sessions/{session_id}/score")
async def get_score(request: Request, session_id: str):
    with _draft_errors():
        return _service(request).get_score(session_id).to_dict()
