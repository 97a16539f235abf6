"""Draft enums and sequence step model."""

from dataclasses import dataclass
from enum import Enum

# Sentinel stored in a slot whose turn timed out with no selection
NONE_CHAMPION = "__none__"

SLOTS_PER_SIDE = 5


class DraftMode(str, Enum):
    """Champion availability rules across a series."""

    NORMAL = "normal"  # Only the current game matters
    FEARLESS = "fearless"  # A team's own picks are closed to that team
    IRONMAN = "ironman"  # Anything used by anyone is closed to everyone


class SessionStatus(str, Enum):
    """Lifecycle of a live draft session."""

    LOBBY = "lobby"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


class GameStatus(str, Enum):
    """Lifecycle of one drafted game."""

    PENDING = "pending"
    DRAFTING = "drafting"
    COMPLETED = "completed"
    EDITING = "editing"


class DraftPhase(str, Enum):
    """Contiguous blocks of the 20-step draft."""

    BAN1 = "ban1"  # Bans 1-6
    PICK1 = "pick1"  # Picks 1-6
    BAN2 = "ban2"  # Bans 7-10
    PICK2 = "pick2"  # Picks 7-10


class DraftSide(str, Enum):
    """Map side within one game."""

    BLUE = "blue"
    RED = "red"

    @property
    def opposite(self) -> "DraftSide":
        return DraftSide.RED if self is DraftSide.BLUE else DraftSide.BLUE


class TeamSide(str, Enum):
    """Persistent team identity across the series."""

    TEAM1 = "team1"
    TEAM2 = "team2"

    @property
    def opposite(self) -> "TeamSide":
        return TeamSide.TEAM2 if self is TeamSide.TEAM1 else TeamSide.TEAM1


class ParticipantType(str, Enum):
    CONTROLLER = "controller"
    SPECTATOR = "spectator"


class DraftActionType(str, Enum):
    BAN = "ban"
    PICK = "pick"
    TIMEOUT = "timeout"


class UnavailableReason(str, Enum):
    PICKED = "picked"
    BANNED = "banned"


@dataclass(frozen=True)
class DraftStep:
    """One entry of the draft order."""

    index: int  # 0-19, position in the draft
    phase: DraftPhase
    turn: DraftSide
    action_type: DraftActionType  # ban or pick, never timeout
    slot: int  # Index within the side's ban/pick array (0-4)

    @property
    def slot_key(self) -> str:
        """Game attribute holding this step's slot, e.g. ``blue_bans``."""
        return f"{self.turn.value}_{self.action_type.value}s"

    @property
    def slot_name(self) -> str:
        """Edit-log slot name, e.g. ``blue_ban_0``."""
        return f"{self.turn.value}_{self.action_type.value}_{self.slot}"
