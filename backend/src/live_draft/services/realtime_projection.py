"""Map draft transitions to realtime events and fold events into a local view.

Outbound: the service turns committed outcomes into events for the hub.
Inbound: a client-side ``DraftProjection`` applies those events to its own
copy of the game and flags when it has fallen out of step and must reload a
snapshot from the store.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from live_draft.models.draft import NONE_CHAMPION, DraftActionType, GameStatus
from live_draft.models.events import (
    ChatMessageEvent,
    DraftActionEvent,
    GameStateEvent,
    HoverEvent,
    LiveDraftEvent,
    PresenceState,
    SessionUpdatedEvent,
    SlotEditedEvent,
    TimerEvent,
)
from live_draft.models.session import (
    ChatMessage,
    DraftActionRecord,
    EditedPick,
    LiveDraftGame,
    LiveDraftSession,
    Participant,
)
from live_draft.services.draft_sequence import parse_slot_name, slot_key, step_at

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


def action_event(action: DraftActionRecord) -> DraftActionEvent:
    return DraftActionEvent(
        game_id=action.game_id,
        action_index=action.action_index,
        action_type=action.action_type,
        team=action.team,
        champion_id=action.champion_id,
        performed_by=action.performed_by,
    )


def game_state_event(game: LiveDraftGame) -> GameStateEvent:
    return GameStateEvent(
        game_id=game.id,
        status=game.status,
        phase=game.current_phase,
        turn=game.current_turn,
        action_index=game.current_action_index,
    )


def slot_edited_event(game: LiveDraftGame, edit: EditedPick) -> SlotEditedEvent:
    return SlotEditedEvent(
        game_id=game.id,
        slot=edit.slot,
        original=edit.original,
        edited=edit.edited,
        at=edit.at,
    )


def session_event(session: LiveDraftSession) -> SessionUpdatedEvent:
    return SessionUpdatedEvent(
        session_id=session.id,
        status=session.status,
        current_game_number=session.current_game_number,
    )


def timer_event(game: LiveDraftGame, remaining: float) -> Optional[TimerEvent]:
    """Countdown tick, or None when the game has no running turn."""
    if game.current_phase is None or game.current_turn is None:
        return None
    return TimerEvent(
        game_id=game.id,
        remaining=max(0, int(remaining + 0.999)),
        phase=game.current_phase,
        turn=game.current_turn,
    )


def chat_event(message: ChatMessage) -> ChatMessageEvent:
    return ChatMessageEvent(
        id=message.id,
        session_id=message.session_id,
        user_id=message.user_id,
        display_name=message.display_name,
        content=message.content,
        created_at=message.created_at.isoformat(),
    )


def presence_event(participant: Participant) -> PresenceState:
    return PresenceState(
        participant_id=participant.id,
        user_id=participant.user_id,
        display_name=participant.display_name or "Anonymous",
        team=participant.team,
        is_captain=participant.is_captain,
        is_connected=participant.is_connected,
    )


def events_for_action(action: DraftActionRecord, game: LiveDraftGame) -> list[LiveDraftEvent]:
    """Events for one committed draft step: the action, then the new game state."""
    return [action_event(action), game_state_event(game)]


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


@dataclass
class DraftProjection:
    """A subscriber's local view of the current game of one session."""

    session_id: str
    game: Optional[LiveDraftGame] = None
    hovers: dict[str, Optional[str]] = field(default_factory=dict)  # side -> champion
    remaining: Optional[int] = None
    presence: dict[str, PresenceState] = field(default_factory=dict)
    messages: list[ChatMessageEvent] = field(default_factory=list)
    needs_resync: bool = False

    def reset(self, game: Optional[LiveDraftGame]) -> None:
        """Replace the local view with a store snapshot."""
        self.game = game.clone() if game is not None else None
        self.hovers = {}
        self.remaining = None
        self.needs_resync = False

    def apply(self, event: LiveDraftEvent) -> bool:
        """Fold one event into the view.

        Returns:
            True if the view changed
        """
        if isinstance(event, DraftActionEvent):
            return self._apply_action(event)
        if isinstance(event, GameStateEvent):
            return self._apply_game_state(event)
        if isinstance(event, SlotEditedEvent):
            return self._apply_slot_edit(event)
        if isinstance(event, HoverEvent):
            if not self._is_current(event.game_id):
                return False
            self.hovers[event.team.value] = event.champion_id
            return True
        if isinstance(event, TimerEvent):
            if not self._is_current(event.game_id):
                return False
            self.remaining = event.remaining
            return True
        if isinstance(event, ChatMessageEvent):
            if any(m.id == event.id for m in self.messages):
                return False
            self.messages.append(event)
            return True
        if isinstance(event, PresenceState):
            self.presence[event.participant_id] = event
            return True
        if isinstance(event, SessionUpdatedEvent):
            # Session-level changes (new game, sides, status) need a full reload
            self.needs_resync = True
            return True
        return False

    def _is_current(self, game_id: str) -> bool:
        return self.game is not None and self.game.id == game_id

    def _apply_action(self, event: DraftActionEvent) -> bool:
        if not self._is_current(event.game_id):
            return False
        if event.action_index < self.game.current_action_index:
            # Duplicate delivery
            return False
        if event.action_index > self.game.current_action_index:
            logger.debug(
                f"Projection for {self.session_id} missed actions "
                f"{self.game.current_action_index}..{event.action_index - 1}"
            )
            self.needs_resync = True
            return False

        step = step_at(event.action_index)
        if step is None or step.turn is not event.team:
            self.needs_resync = True
            return False

        value = NONE_CHAMPION if event.action_type is DraftActionType.TIMEOUT else event.champion_id
        self.game.slots(step.slot_key)[step.slot] = value
        self.game.current_action_index = event.action_index + 1
        next_step = step_at(event.action_index + 1)
        if next_step is None:
            self.game.status = GameStatus.COMPLETED
            self.game.current_phase = None
            self.game.current_turn = None
        else:
            self.game.current_phase = next_step.phase
            self.game.current_turn = next_step.turn
        self.hovers.pop(event.team.value, None)
        return True

    def _apply_game_state(self, event: GameStateEvent) -> bool:
        if not self._is_current(event.game_id):
            self.needs_resync = True
            return False
        if event.action_index != self.game.current_action_index:
            self.needs_resync = True
            return False
        self.game.status = event.status
        self.game.current_phase = event.phase
        self.game.current_turn = event.turn
        return True

    def _apply_slot_edit(self, event: SlotEditedEvent) -> bool:
        if not self._is_current(event.game_id):
            return False
        edit = EditedPick(slot=event.slot, original=event.original, edited=event.edited, at=event.at)
        if edit in self.game.edited_picks:
            # Duplicate delivery
            return False
        try:
            side, action_type, index = parse_slot_name(event.slot)
        except ValueError:
            self.needs_resync = True
            return False

        slots = self.game.slots(slot_key(side, action_type))
        if slots[index] != event.original:
            logger.debug(
                f"Projection for {self.session_id} has {slots[index]} in {event.slot}, "
                f"edit expected {event.original}"
            )
            self.needs_resync = True
            return False
        slots[index] = event.edited
        self.game.edited_picks.append(edit)
        return True
