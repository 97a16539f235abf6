"""Data models for live drafts."""

from live_draft.models.draft import (
    NONE_CHAMPION,
    DraftActionType,
    DraftMode,
    DraftPhase,
    DraftSide,
    DraftStep,
    GameStatus,
    ParticipantType,
    SessionStatus,
    TeamSide,
    UnavailableReason,
)
from live_draft.models.session import (
    ChatMessage,
    DraftActionRecord,
    EditedPick,
    LiveDraftGame,
    LiveDraftSession,
    Participant,
    UnavailableChampion,
)
from live_draft.models.events import (
    ChatMessageEvent,
    DraftActionEvent,
    GameStateEvent,
    HoverEvent,
    PresenceState,
    SessionUpdatedEvent,
    TimerEvent,
    parse_event,
)

__all__ = [
    "NONE_CHAMPION",
    "DraftActionType",
    "DraftMode",
    "DraftPhase",
    "DraftSide",
    "DraftStep",
    "GameStatus",
    "ParticipantType",
    "SessionStatus",
    "TeamSide",
    "UnavailableReason",
    "ChatMessage",
    "DraftActionRecord",
    "EditedPick",
    "LiveDraftGame",
    "LiveDraftSession",
    "Participant",
    "UnavailableChampion",
    "ChatMessageEvent",
    "DraftActionEvent",
    "GameStateEvent",
    "HoverEvent",
    "PresenceState",
    "SessionUpdatedEvent",
    "TimerEvent",
    "parse_event",
]
