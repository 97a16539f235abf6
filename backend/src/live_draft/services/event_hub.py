"""In-process fan-out of realtime events to session subscribers."""

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional

from live_draft.models.events import LiveDraftEvent

logger = logging.getLogger(__name__)


@dataclass
class Subscription:
    """One listener (usually a WebSocket) on a session's channel."""

    id: str
    session_id: str
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=256))
    dropped: int = 0  # Events lost to a full queue


class EventHub:
    """Per-session broadcast channel.

    Publishing never blocks: a subscriber whose queue is full misses the
    event and is expected to resync from a snapshot.
    """

    def __init__(self, queue_size: int = 256):
        self._queue_size = queue_size
        self._subscriptions: dict[str, dict[str, Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, session_id: str) -> Subscription:
        sub = Subscription(
            id=str(uuid.uuid4())[:8],
            session_id=session_id,
            queue=asyncio.Queue(maxsize=self._queue_size),
        )
        with self._lock:
            self._subscriptions.setdefault(session_id, {})[sub.id] = sub
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.session_id)
            if subs is None:
                return
            subs.pop(subscription.id, None)
            if not subs:
                del self._subscriptions[subscription.session_id]

    def subscriber_count(self, session_id: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(session_id, {}))

    def publish(self, session_id: str, event: LiveDraftEvent, exclude: Optional[str] = None) -> int:
        """Send an event to every subscriber of a session.

        Args:
            session_id: Channel to publish on
            event: Event to deliver
            exclude: Subscription id to skip (the sender of a hover, say)

        Returns:
            Number of subscribers the event was queued for
        """
        with self._lock:
            subs = list(self._subscriptions.get(session_id, {}).values())

        delivered = 0
        for sub in subs:
            if sub.id == exclude:
                continue
            try:
                sub.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning(
                    f"Subscriber {sub.id} on session {session_id} is behind, dropped {event.type}"
                )
        return delivered
