"""Series score, clinch policy and ledger contributions of finished games."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Literal, Optional

from live_draft.models.draft import (
    NONE_CHAMPION,
    DraftActionType,
    DraftMode,
    DraftSide,
    TeamSide,
    UnavailableReason,
)
from live_draft.models.session import LiveDraftGame, LiveDraftSession, UnavailableChampion
from live_draft.services.draft_sequence import slot_key
from live_draft.utils import utcnow

ClinchPolicy = Literal["play_all", "majority"]


@dataclass(frozen=True)
class SeriesScore:
    team1: int = 0
    team2: int = 0

    def wins(self, team: TeamSide) -> int:
        return self.team1 if team is TeamSide.TEAM1 else self.team2

    def to_dict(self) -> dict:
        return {"team1": self.team1, "team2": self.team2}


def get_series_score(games: Iterable[LiveDraftGame]) -> SeriesScore:
    """Calculate the series score from games.

    Recomputed from scratch on every call, so a corrected winner never
    leaves a stale count behind.
    """
    team1 = 0
    team2 = 0
    for game in games:
        if game.winner is None:
            continue
        if game.team_on(game.winner) is TeamSide.TEAM1:
            team1 += 1
        else:
            team2 += 1
    return SeriesScore(team1=team1, team2=team2)


def wins_needed(planned_games: int) -> int:
    return planned_games // 2 + 1


def is_series_clinched(
    score: SeriesScore,
    planned_games: int,
    policy: ClinchPolicy = "play_all",
) -> bool:
    """Check if the remaining games of the series are moot.

    ``play_all`` never clinches early; ``majority`` clinches once a team has
    won more than half of the planned games.
    """
    if policy == "play_all":
        return False
    needed = wins_needed(planned_games)
    return score.team1 >= needed or score.team2 >= needed


def series_leader(score: SeriesScore) -> Optional[TeamSide]:
    if score.team1 > score.team2:
        return TeamSide.TEAM1
    if score.team2 > score.team1:
        return TeamSide.TEAM2
    return None


def ledger_entries_for_game(
    session: LiveDraftSession,
    game: LiveDraftGame,
    now: Optional[datetime] = None,
) -> list[UnavailableChampion]:
    """Unavailable champion records contributed by a completed game.

    One entry per filled ban/pick slot (timeouts skipped), tagged with the
    side and the team that used it. Normal mode keeps no ledger.
    """
    if session.draft_mode is DraftMode.NORMAL:
        return []
    now = now or utcnow()
    entries: list[UnavailableChampion] = []
    seen: set[tuple[str, TeamSide]] = set()
    # Picks first so a champion both picked and banned by a team is kept as picked
    for action_type, reason in (
        (DraftActionType.PICK, UnavailableReason.PICKED),
        (DraftActionType.BAN, UnavailableReason.BANNED),
    ):
        for side in (DraftSide.BLUE, DraftSide.RED):
            team = game.team_on(side)
            for champion_id in game.slots(slot_key(side, action_type)):
                if champion_id is None or champion_id == NONE_CHAMPION:
                    continue
                if (champion_id, team) in seen:
                    continue
                seen.add((champion_id, team))
                entries.append(
                    UnavailableChampion(
                        session_id=session.id,
                        champion_id=champion_id,
                        from_game=game.game_number,
                        reason=reason,
                        team=team,
                        side=side,
                        created_at=now,
                    )
                )
    return entries


def ledger_entry_for_slot(
    session: LiveDraftSession,
    game: LiveDraftGame,
    side: DraftSide,
    action_type: DraftActionType,
    champion_id: str,
    now: Optional[datetime] = None,
) -> Optional[UnavailableChampion]:
    """Ledger record for a single slot filled after the game completed."""
    if session.draft_mode is DraftMode.NORMAL or champion_id == NONE_CHAMPION:
        return None
    reason = UnavailableReason.PICKED if action_type is DraftActionType.PICK else UnavailableReason.BANNED
    return UnavailableChampion(
        session_id=session.id,
        champion_id=champion_id,
        from_game=game.game_number,
        reason=reason,
        team=game.team_on(side),
        side=side,
        created_at=now or utcnow(),
    )
