"""Error kinds raised by the live draft engine.

Rule violations (wrong turn, unavailable champion, session not ready) are
``user_visible`` and reported back to the submitting client. Write races
(``StaleWrite``, ``SlotAlreadyFilled``) are recovered inside the service by
re-reading the store and never reach a user.
"""


class LiveDraftError(Exception):
    """Base class for live draft errors."""

    user_visible = True

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class NotFound(LiveDraftError):
    """Session, game or participant does not exist."""


class InvalidRequest(LiveDraftError):
    """Malformed or out-of-bounds request (names, chat, series limits)."""


class OutOfTurn(LiveDraftError):
    """Submitting side is not the side whose turn it is."""


class InvalidPhaseState(LiveDraftError):
    """Game or session is not in a state that accepts the operation."""


class ChampionUnavailable(LiveDraftError):
    """Champion is already used in this game or locked by series rules."""


class SessionNotReady(LiveDraftError):
    """Sides are not chosen or captains are not ready."""


class TimerNotExpired(LiveDraftError):
    """A timeout was submitted before the turn's time budget elapsed."""


class SlotAlreadyFilled(LiveDraftError):
    """The slot targeted by the current step already holds a value."""

    user_visible = False


class StaleWrite(LiveDraftError):
    """Conditional update lost: another writer already advanced the game."""

    user_visible = False
