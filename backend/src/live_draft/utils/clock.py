"""Identifier and timestamp helpers shared by the store and services."""

import secrets
import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the store keeps naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id(prefix: str = "") -> str:
    """Short random identifier, optionally prefixed (``ses_``, ``game_``...)."""
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def new_invite_token() -> str:
    """URL-safe token used in the single join link of a session."""
    return secrets.token_urlsafe(12)
