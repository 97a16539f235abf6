"""Canonical 20-step pick/ban order for one game.

Turn order is side-relative (blue/red), never team-relative. This table is
the only place the engine encodes who acts when.
"""

from typing import Optional

from live_draft.models.draft import (
    DraftActionType,
    DraftPhase,
    DraftSide,
    DraftStep,
)

_B = DraftSide.BLUE
_R = DraftSide.RED
_BAN = DraftActionType.BAN
_PICK = DraftActionType.PICK

# (phase, turn, action type, slot index within that side's array)
_ORDER = [
    # Ban Phase 1 (6 bans)
    (DraftPhase.BAN1, _B, _BAN, 0),
    (DraftPhase.BAN1, _R, _BAN, 0),
    (DraftPhase.BAN1, _B, _BAN, 1),
    (DraftPhase.BAN1, _R, _BAN, 1),
    (DraftPhase.BAN1, _B, _BAN, 2),
    (DraftPhase.BAN1, _R, _BAN, 2),
    # Pick Phase 1 (6 picks)
    (DraftPhase.PICK1, _B, _PICK, 0),
    (DraftPhase.PICK1, _R, _PICK, 0),
    (DraftPhase.PICK1, _R, _PICK, 1),
    (DraftPhase.PICK1, _B, _PICK, 1),
    (DraftPhase.PICK1, _B, _PICK, 2),
    (DraftPhase.PICK1, _R, _PICK, 2),
    # Ban Phase 2 (4 bans)
    (DraftPhase.BAN2, _R, _BAN, 3),
    (DraftPhase.BAN2, _B, _BAN, 3),
    (DraftPhase.BAN2, _R, _BAN, 4),
    (DraftPhase.BAN2, _B, _BAN, 4),
    # Pick Phase 2 (4 picks)
    (DraftPhase.PICK2, _R, _PICK, 3),
    (DraftPhase.PICK2, _B, _PICK, 3),
    (DraftPhase.PICK2, _B, _PICK, 4),
    (DraftPhase.PICK2, _R, _PICK, 4),
]

DRAFT_ORDER: tuple[DraftStep, ...] = tuple(
    DraftStep(index=i, phase=phase, turn=turn, action_type=action_type, slot=slot)
    for i, (phase, turn, action_type, slot) in enumerate(_ORDER)
)

DRAFT_LENGTH = len(DRAFT_ORDER)


def step_at(index: int) -> Optional[DraftStep]:
    """Get the draft step for an action index.

    Args:
        index: Linear action index

    Returns:
        The step, or None when index is outside [0, 20)
    """
    if 0 <= index < DRAFT_LENGTH:
        return DRAFT_ORDER[index]
    return None


def time_budget(step: DraftStep, ban_seconds: int, pick_seconds: int) -> int:
    """Seconds allowed for a step, depending on whether it bans or picks."""
    return ban_seconds if step.action_type is DraftActionType.BAN else pick_seconds


def slot_name(side: DraftSide, action_type: DraftActionType, index: int) -> str:
    """Edit-log slot name, e.g. ``red_pick_4``."""
    return f"{side.value}_{action_type.value}_{index}"


def parse_slot_name(slot: str) -> tuple[DraftSide, DraftActionType, int]:
    """Parse ``blue_pick_3`` into (side, action type, index).

    Raises:
        ValueError: If the slot name is malformed or out of range
    """
    parts = slot.split("_")
    if len(parts) != 3:
        raise ValueError(f"Invalid slot format: {slot}")
    side_str, type_str, index_str = parts
    if side_str not in ("blue", "red") or type_str not in ("ban", "pick"):
        raise ValueError(f"Invalid slot format: {slot}")
    try:
        index = int(index_str)
    except ValueError:
        raise ValueError(f"Invalid slot index: {index_str}")
    if not 0 <= index <= 4:
        raise ValueError(f"Invalid slot index: {index}")
    return DraftSide(side_str), DraftActionType(type_str), index


def slot_key(side: DraftSide, action_type: DraftActionType) -> str:
    """Game attribute holding a side's bans or picks, e.g. ``blue_picks``."""
    return f"{side.value}_{action_type.value}s"
