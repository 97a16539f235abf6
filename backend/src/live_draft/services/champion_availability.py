"""Champion availability rules for normal, fearless and ironman series.

The predicate is pure: callers pass the current game and the series ledger
and get a yes/no answer, with no caching between calls.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from live_draft.models.draft import DraftMode, TeamSide, UnavailableReason
from live_draft.models.session import LiveDraftGame, UnavailableChampion


def is_champion_unavailable(
    champion_id: str,
    mode: DraftMode,
    current_game: LiveDraftGame,
    ledger: Iterable[UnavailableChampion],
    team: Optional[TeamSide] = None,
) -> bool:
    """Check if a champion is unavailable in the current context.

    Args:
        champion_id: Champion being selected
        mode: Series draft mode
        current_game: Game being drafted
        ledger: Unavailable champion records from earlier games
        team: Team asking; fearless checks need it

    Returns:
        True if the champion may not be selected
    """
    mode = DraftMode(mode)
    team = TeamSide(team) if team is not None else None

    # Already picked/banned in this game, whatever the mode
    if champion_id in current_game.champions_in_game:
        return True

    if mode is DraftMode.NORMAL:
        return False

    # Fearless: only the asking team's own picks carry over
    if mode is DraftMode.FEARLESS:
        if team is None:
            return False
        return any(
            uc.champion_id == champion_id
            and uc.team is team
            and uc.reason is UnavailableReason.PICKED
            for uc in ledger
        )

    # Ironman: any earlier pick or ban by anyone
    if mode is DraftMode.IRONMAN:
        return any(uc.champion_id == champion_id for uc in ledger)

    return False


@dataclass
class LedgerUse:
    team: TeamSide
    game_number: int
    reason: UnavailableReason


@dataclass
class UnavailableIndex:
    """Read-side index champion -> uses, rebuilt from the append-only ledger."""

    uses: dict[str, list[LedgerUse]] = field(default_factory=dict)

    @classmethod
    def from_ledger(cls, ledger: Iterable[UnavailableChampion]) -> "UnavailableIndex":
        uses: dict[str, list[LedgerUse]] = defaultdict(list)
        for uc in ledger:
            uses[uc.champion_id].append(
                LedgerUse(team=uc.team, game_number=uc.from_game, reason=uc.reason)
            )
        return cls(uses=dict(uses))

    def blocked_for(self, mode: DraftMode, team: Optional[TeamSide] = None) -> set[str]:
        """Champions the ledger closes for a team under a mode."""
        mode = DraftMode(mode)
        team = TeamSide(team) if team is not None else None
        if mode is DraftMode.NORMAL:
            return set()
        if mode is DraftMode.IRONMAN:
            return set(self.uses)
        if team is None:
            return set()
        return {
            champ
            for champ, uses in self.uses.items()
            if any(u.team is team and u.reason is UnavailableReason.PICKED for u in uses)
        }

    def to_dict(self) -> dict:
        """Serialize for UI tooltips: champion -> [{team, game, reason}]."""
        return {
            champ: [
                {"team": u.team.value, "game": u.game_number, "reason": u.reason.value}
                for u in uses
            ]
            for champ, uses in sorted(self.uses.items())
        }


def unavailable_champions(
    mode: DraftMode,
    current_game: LiveDraftGame,
    ledger: Iterable[UnavailableChampion],
    team: Optional[TeamSide] = None,
) -> set[str]:
    """Every champion a team cannot select right now (for the champion grid)."""
    index = UnavailableIndex.from_ledger(ledger)
    return current_game.champions_in_game | index.blocked_for(mode, team)
