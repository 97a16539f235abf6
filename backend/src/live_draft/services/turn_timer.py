"""Background countdown for drafting games.

Each tick publishes the remaining seconds for every running turn and
submits a timeout for turns past their budget plus a grace period. The
timeout goes through the same conditional commit as any participant's, so
a captain's timeout racing the timer lands at most once.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from live_draft.errors import LiveDraftError
from live_draft.models.draft import SessionStatus
from live_draft.services import draft_action_processor as processor
from live_draft.services.live_draft_service import LiveDraftService
from live_draft.services.realtime_projection import timer_event
from live_draft.utils import utcnow

logger = logging.getLogger(__name__)

TIMER_PERFORMER = "system:timer"


@dataclass
class TickReport:
    """What one tick did."""

    ticked: int = 0  # Timer events published
    timed_out: int = 0  # Timeouts applied


class TurnTimer:
    """Drives turn countdowns and timeouts for all drafting games."""

    def __init__(
        self,
        service: LiveDraftService,
        tick_seconds: float = 1.0,
        grace_seconds: float = 2.0,
    ):
        self.service = service
        self.tick_seconds = tick_seconds
        self.grace_seconds = grace_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self, now: Optional[datetime] = None) -> TickReport:
        """Run one pass over drafting games."""
        now = now or utcnow()
        report = TickReport()
        repository = self.service.repository

        for game in repository.list_drafting_games():
            try:
                session = repository.get_session(game.session_id)
            except LiveDraftError:
                continue
            # Paused clocks are restarted on resume
            if session.status is not SessionStatus.IN_PROGRESS:
                continue

            remaining = processor.turn_remaining(session, game, now)
            if remaining is None:
                continue

            if remaining <= -self.grace_seconds:
                try:
                    result = self.service.apply_timeout(
                        game.id,
                        performed_by=TIMER_PERFORMER,
                        grace_seconds=self.grace_seconds,
                        now=now,
                    )
                except LiveDraftError as e:
                    logger.warning(f"Timeout for game {game.id} rejected: {e.message}")
                    continue
                if result.applied:
                    report.timed_out += 1
                    logger.info(
                        f"Game {game.id} action {result.action.action_index} timed out "
                        f"({result.action.team.value})"
                    )
                continue

            event = timer_event(game, remaining)
            if event is not None:
                self.service.hub.publish(session.id, event)
                report.ticked += 1

        return report

    async def _run_loop(self) -> None:
        """Tick until cancelled."""
        while True:
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Turn timer tick failed: {e}")
            await asyncio.sleep(self.tick_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Turn timer started (tick {self.tick_seconds}s, grace {self.grace_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Turn timer stopped")
