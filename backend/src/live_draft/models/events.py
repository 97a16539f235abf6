"""Realtime event shapes exchanged on a session channel.

Every event serializes to a JSON object with a ``type`` discriminator and
camelCase fields, the wire format clients already speak.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from live_draft.models.draft import (
    DraftActionType,
    DraftPhase,
    DraftSide,
    GameStatus,
    SessionStatus,
    TeamSide,
)


def _value(v):
    return v.value if hasattr(v, "value") else v


@dataclass
class DraftActionEvent:
    """A draft step was committed."""

    type: ClassVar[str] = "draft_action"

    game_id: str
    action_index: int
    action_type: DraftActionType
    team: DraftSide
    champion_id: Optional[str]
    performed_by: Optional[str] = None

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "gameId": self.game_id,
            "actionIndex": self.action_index,
            "actionType": _value(self.action_type),
            "team": _value(self.team),
            "championId": self.champion_id,
            "performedBy": self.performed_by,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "DraftActionEvent":
        return cls(
            game_id=payload["gameId"],
            action_index=int(payload["actionIndex"]),
            action_type=DraftActionType(payload["actionType"]),
            team=DraftSide(payload["team"]),
            champion_id=payload.get("championId"),
            performed_by=payload.get("performedBy"),
        )


@dataclass
class HoverEvent:
    """Ephemeral: a captain is hovering a champion. Never persisted."""

    type: ClassVar[str] = "champion_hovered"

    game_id: str
    team: DraftSide
    champion_id: Optional[str]

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "gameId": self.game_id,
            "team": _value(self.team),
            "championId": self.champion_id,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "HoverEvent":
        return cls(
            game_id=payload["gameId"],
            team=DraftSide(payload["team"]),
            champion_id=payload.get("championId"),
        )


@dataclass
class TimerEvent:
    """Countdown tick for the current turn."""

    type: ClassVar[str] = "timer"

    game_id: str
    remaining: int
    phase: DraftPhase
    turn: DraftSide

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "gameId": self.game_id,
            "remaining": self.remaining,
            "phase": _value(self.phase),
            "turn": _value(self.turn),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "TimerEvent":
        return cls(
            game_id=payload["gameId"],
            remaining=int(payload["remaining"]),
            phase=DraftPhase(payload["phase"]),
            turn=DraftSide(payload["turn"]),
        )


@dataclass
class GameStateEvent:
    """Game row changed status, phase, turn or index."""

    type: ClassVar[str] = "game_state"

    game_id: str
    status: GameStatus
    phase: Optional[DraftPhase]
    turn: Optional[DraftSide]
    action_index: int

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "gameId": self.game_id,
            "status": _value(self.status),
            "phase": _value(self.phase),
            "turn": _value(self.turn),
            "actionIndex": self.action_index,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "GameStateEvent":
        phase = payload.get("phase")
        turn = payload.get("turn")
        return cls(
            game_id=payload["gameId"],
            status=GameStatus(payload["status"]),
            phase=DraftPhase(phase) if phase else None,
            turn=DraftSide(turn) if turn else None,
            action_index=int(payload["actionIndex"]),
        )


@dataclass
class SlotEditedEvent:
    """A slot was filled after a timeout or corrected after the draft."""

    type: ClassVar[str] = "slot_edited"

    game_id: str
    slot: str  # e.g. "blue_ban_0"
    original: Optional[str]
    edited: str
    at: str  # ISO timestamp of the edit

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "gameId": self.game_id,
            "slot": self.slot,
            "original": self.original,
            "edited": self.edited,
            "at": self.at,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "SlotEditedEvent":
        return cls(
            game_id=payload["gameId"],
            slot=payload["slot"],
            original=payload.get("original"),
            edited=payload["edited"],
            at=payload["at"],
        )


@dataclass
class ChatMessageEvent:
    type: ClassVar[str] = "chat_message"

    id: str
    session_id: str
    user_id: Optional[str]
    display_name: str
    content: str
    created_at: str

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "id": self.id,
            "sessionId": self.session_id,
            "userId": self.user_id,
            "displayName": self.display_name,
            "content": self.content,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "ChatMessageEvent":
        return cls(
            id=payload["id"],
            session_id=payload["sessionId"],
            user_id=payload.get("userId"),
            display_name=payload["displayName"],
            content=payload["content"],
            created_at=payload["createdAt"],
        )


@dataclass
class PresenceState:
    type: ClassVar[str] = "presence"

    participant_id: str
    user_id: Optional[str]
    display_name: str
    team: Optional[TeamSide]
    is_captain: bool
    is_connected: bool

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "participantId": self.participant_id,
            "userId": self.user_id,
            "displayName": self.display_name,
            "team": _value(self.team),
            "isCaptain": self.is_captain,
            "isConnected": self.is_connected,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "PresenceState":
        team = payload.get("team")
        return cls(
            participant_id=payload["participantId"],
            user_id=payload.get("userId"),
            display_name=payload.get("displayName") or "Anonymous",
            team=TeamSide(team) if team else None,
            is_captain=bool(payload.get("isCaptain")),
            is_connected=bool(payload.get("isConnected")),
        )


@dataclass
class SessionUpdatedEvent:
    """Session row changed; listeners reload the session snapshot."""

    type: ClassVar[str] = "session_updated"

    session_id: str
    status: SessionStatus
    current_game_number: int

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "sessionId": self.session_id,
            "status": _value(self.status),
            "currentGameNumber": self.current_game_number,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionUpdatedEvent":
        return cls(
            session_id=payload["sessionId"],
            status=SessionStatus(payload["status"]),
            current_game_number=int(payload["currentGameNumber"]),
        )


LiveDraftEvent = Union[
    DraftActionEvent,
    HoverEvent,
    TimerEvent,
    GameStateEvent,
    SlotEditedEvent,
    ChatMessageEvent,
    PresenceState,
    SessionUpdatedEvent,
]

EVENT_TYPES: dict[str, type] = {
    cls.type: cls
    for cls in (
        DraftActionEvent,
        HoverEvent,
        TimerEvent,
        GameStateEvent,
        SlotEditedEvent,
        ChatMessageEvent,
        PresenceState,
        SessionUpdatedEvent,
    )
}


def parse_event(payload: dict) -> LiveDraftEvent:
    """Build an event from its wire payload.

    Raises:
        ValueError: Unknown ``type`` or malformed fields
    """
    event_cls = EVENT_TYPES.get(payload.get("type", ""))
    if event_cls is None:
        raise ValueError(f"Unknown event type: {payload.get('type')!r}")
    try:
        return event_cls.from_payload(payload)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed {event_cls.type} event: {e}") from e
