"""Session, game and ledger models for live drafts."""

import json
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Optional

from live_draft.models.draft import (
    NONE_CHAMPION,
    SLOTS_PER_SIDE,
    DraftActionType,
    DraftMode,
    DraftPhase,
    DraftSide,
    GameStatus,
    ParticipantType,
    SessionStatus,
    TeamSide,
    UnavailableReason,
)
from live_draft.utils import utcnow

SLOT_KEYS = ("blue_bans", "red_bans", "blue_picks", "red_picks")


def _empty_slots() -> list[Optional[str]]:
    return [None] * SLOTS_PER_SIDE


def _enum_or_none(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    return enum_cls(value)


def _plain(value: Any) -> Any:
    """Convert enums and datetimes to JSON/DB friendly values."""
    if isinstance(value, (DraftMode, SessionStatus, GameStatus, DraftPhase, DraftSide,
                          TeamSide, ParticipantType, DraftActionType, UnavailableReason)):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _row_kwargs(cls, row: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in row.items() if k in names}


@dataclass
class LiveDraftSession:
    """One drafting engagement between team1 and team2."""

    id: str
    name: str
    draft_mode: DraftMode = DraftMode.NORMAL
    planned_games: int = 1
    ban_time_seconds: int = 30
    pick_time_seconds: int = 30
    invite_token: str = ""
    created_by: Optional[str] = None

    team1_name: str = "Team 1"
    team2_name: str = "Team 2"
    team1_captain_id: Optional[str] = None
    team2_captain_id: Optional[str] = None
    team1_captain_display_name: Optional[str] = None
    team2_captain_display_name: Optional[str] = None
    team1_captain_avatar_url: Optional[str] = None
    team2_captain_avatar_url: Optional[str] = None
    team1_captain_role: Optional[str] = None
    team2_captain_role: Optional[str] = None

    # Which side each team chose (independent of team identity)
    team1_side: Optional[DraftSide] = None
    team2_side: Optional[DraftSide] = None
    team1_ready: bool = False
    team2_ready: bool = False

    # Linked roster records
    team1_linked_draft_id: Optional[str] = None
    team2_linked_draft_id: Optional[str] = None
    team1_linked_team_id: Optional[str] = None
    team2_linked_team_id: Optional[str] = None
    team1_linked_enemy_id: Optional[str] = None
    team2_linked_enemy_id: Optional[str] = None

    status: SessionStatus = SessionStatus.LOBBY
    current_game_number: int = 1

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.draft_mode = DraftMode(self.draft_mode)
        self.status = SessionStatus(self.status)
        self.team1_side = _enum_or_none(DraftSide, self.team1_side)
        self.team2_side = _enum_or_none(DraftSide, self.team2_side)

    def side_of(self, team: TeamSide) -> Optional[DraftSide]:
        return self.team1_side if team is TeamSide.TEAM1 else self.team2_side

    def is_ready(self, team: TeamSide) -> bool:
        return self.team1_ready if team is TeamSide.TEAM1 else self.team2_ready

    def captain_id(self, team: TeamSide) -> Optional[str]:
        return self.team1_captain_id if team is TeamSide.TEAM1 else self.team2_captain_id

    def captain_display_name(self, team: TeamSide) -> Optional[str]:
        if team is TeamSide.TEAM1:
            return self.team1_captain_display_name
        return self.team2_captain_display_name

    def has_captain(self, team: TeamSide) -> bool:
        return bool(self.captain_id(team) or self.captain_display_name(team))

    def team_name(self, team: TeamSide) -> str:
        return self.team1_name if team is TeamSide.TEAM1 else self.team2_name

    @property
    def sides_complementary(self) -> bool:
        return (
            self.team1_side is not None
            and self.team2_side is not None
            and self.team1_side != self.team2_side
        )

    @property
    def both_ready(self) -> bool:
        return self.team1_ready and self.team2_ready

    @property
    def blue_side_team(self) -> Optional[TeamSide]:
        """Team that chose blue in the lobby, if sides are settled."""
        if not self.sides_complementary:
            return None
        return TeamSide.TEAM1 if self.team1_side is DraftSide.BLUE else TeamSide.TEAM2

    @classmethod
    def from_row(cls, row: dict) -> "LiveDraftSession":
        return cls(**_row_kwargs(cls, row))

    def to_row(self) -> dict:
        return {f.name: _plain_db(getattr(self, f.name)) for f in fields(self)}

    def to_dict(self) -> dict:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass
class EditedPick:
    """A post-hoc correction of one slot."""

    slot: str  # e.g. "blue_pick_3"
    original: Optional[str]
    edited: str
    at: str  # ISO timestamp


@dataclass
class LiveDraftGame:
    """One drafted match within a session."""

    id: str
    session_id: str
    game_number: int
    blue_side_team: TeamSide = TeamSide.TEAM1
    status: GameStatus = GameStatus.PENDING
    current_phase: Optional[DraftPhase] = None
    current_turn: Optional[DraftSide] = None
    current_action_index: int = 0
    turn_started_at: Optional[datetime] = None
    version: int = 0  # Bumped by the store on every write

    blue_bans: list[Optional[str]] = field(default_factory=_empty_slots)
    red_bans: list[Optional[str]] = field(default_factory=_empty_slots)
    blue_picks: list[Optional[str]] = field(default_factory=_empty_slots)
    red_picks: list[Optional[str]] = field(default_factory=_empty_slots)

    edited_picks: list[EditedPick] = field(default_factory=list)
    winner: Optional[DraftSide] = None

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.blue_side_team = TeamSide(self.blue_side_team)
        self.status = GameStatus(self.status)
        self.current_phase = _enum_or_none(DraftPhase, self.current_phase)
        self.current_turn = _enum_or_none(DraftSide, self.current_turn)
        self.winner = _enum_or_none(DraftSide, self.winner)
        for key in SLOT_KEYS:
            slots = getattr(self, key)
            setattr(self, key, list(slots) if slots is not None else _empty_slots())
        self.edited_picks = [
            e if isinstance(e, EditedPick) else EditedPick(**e)
            for e in (self.edited_picks or [])
        ]

    def clone(self) -> "LiveDraftGame":
        """Copy with independent slot lists and edit log."""
        return replace(
            self,
            blue_bans=list(self.blue_bans),
            red_bans=list(self.red_bans),
            blue_picks=list(self.blue_picks),
            red_picks=list(self.red_picks),
            edited_picks=list(self.edited_picks),
        )

    def side_of(self, team: TeamSide) -> DraftSide:
        """Side a team plays in this game."""
        return DraftSide.BLUE if team is self.blue_side_team else DraftSide.RED

    def team_on(self, side: DraftSide) -> TeamSide:
        """Team occupying a side in this game."""
        return self.blue_side_team if side is DraftSide.BLUE else self.blue_side_team.opposite

    def slots(self, key: str) -> list[Optional[str]]:
        return getattr(self, key)

    @property
    def champions_in_game(self) -> set[str]:
        """Real champions in any slot (timeouts and empty slots excluded)."""
        return {
            champ
            for key in SLOT_KEYS
            for champ in getattr(self, key)
            if champ is not None and champ != NONE_CHAMPION
        }

    @property
    def filled_slot_count(self) -> int:
        return sum(1 for key in SLOT_KEYS for champ in getattr(self, key) if champ is not None)

    @classmethod
    def from_row(cls, row: dict) -> "LiveDraftGame":
        kwargs = _row_kwargs(cls, row)
        edited = kwargs.get("edited_picks")
        if isinstance(edited, str):
            kwargs["edited_picks"] = json.loads(edited) if edited else []
        return cls(**kwargs)

    def to_row(self) -> dict:
        row = {f.name: _plain_db(getattr(self, f.name)) for f in fields(self)}
        row["edited_picks"] = json.dumps([asdict(e) for e in self.edited_picks])
        return row

    def to_dict(self) -> dict:
        data = {k: _plain(v) for k, v in asdict(self).items()}
        data["edited_picks"] = [asdict(e) for e in self.edited_picks]
        return data


@dataclass
class DraftActionRecord:
    """Immutable record of one resolved draft step."""

    id: str
    game_id: str
    action_index: int
    action_type: DraftActionType
    team: DraftSide  # Side that acted
    champion_id: Optional[str]  # None for timeout
    performed_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.action_type = DraftActionType(self.action_type)
        self.team = DraftSide(self.team)

    @classmethod
    def from_row(cls, row: dict) -> "DraftActionRecord":
        return cls(**_row_kwargs(cls, row))

    def to_row(self) -> dict:
        return {f.name: _plain_db(getattr(self, f.name)) for f in fields(self)}

    def to_dict(self) -> dict:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass
class UnavailableChampion:
    """Ledger entry: a champion used in an earlier game of the series."""

    session_id: str
    champion_id: str
    from_game: int
    reason: UnavailableReason
    team: TeamSide  # Team that used it
    side: DraftSide  # Side that team played in from_game
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.reason = UnavailableReason(self.reason)
        self.team = TeamSide(self.team)
        self.side = DraftSide(self.side)

    @classmethod
    def from_row(cls, row: dict) -> "UnavailableChampion":
        return cls(**_row_kwargs(cls, row))

    def to_row(self) -> dict:
        return {f.name: _plain_db(getattr(self, f.name)) for f in fields(self)}

    def to_dict(self) -> dict:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass
class Participant:
    """A connected actor: captain/controller or spectator."""

    id: str
    session_id: str
    participant_type: ParticipantType
    user_id: Optional[str] = None
    team: Optional[TeamSide] = None
    display_name: Optional[str] = None
    is_captain: bool = False
    is_connected: bool = True
    last_seen_at: datetime = field(default_factory=utcnow)
    joined_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.participant_type = ParticipantType(self.participant_type)
        self.team = _enum_or_none(TeamSide, self.team)

    @classmethod
    def from_row(cls, row: dict) -> "Participant":
        return cls(**_row_kwargs(cls, row))

    def to_row(self) -> dict:
        return {f.name: _plain_db(getattr(self, f.name)) for f in fields(self)}

    def to_dict(self) -> dict:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass
class ChatMessage:
    """Session-scoped chat line."""

    id: str
    session_id: str
    display_name: str
    content: str
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: dict) -> "ChatMessage":
        return cls(**_row_kwargs(cls, row))

    def to_row(self) -> dict:
        return {f.name: _plain_db(getattr(self, f.name)) for f in fields(self)}

    def to_dict(self) -> dict:
        return {k: _plain(v) for k, v in asdict(self).items()}


def _plain_db(value: Any) -> Any:
    """Like ``_plain`` but keeps datetimes native for DuckDB TIMESTAMP columns."""
    if isinstance(value, datetime):
        return value
    return _plain(value)
