"""Utility modules for live_draft."""

from live_draft.utils.clock import new_id, new_invite_token, utcnow

__all__ = [
    "new_id",
    "new_invite_token",
    "utcnow",
]
