"""Diagnostic timeline capture for live drafts.

Records what happened during one game's draft (actions, timeouts, rejected
submissions, write races) so a disputed draft can be reconstructed later.

Usage:
    from live_draft.services.draft_diagnostics import DraftDiagnostics

    diagnostics = DraftDiagnostics(output_dir, enabled=True)
    diagnostics.start_game(session, game)
    diagnostics.log_action(action)
    diagnostics.log_rejection("team1", "Ahri", "ChampionUnavailable", "...")
    diagnostics.save()
"""
import json
import logging
import os
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Optional

from live_draft.models.session import DraftActionRecord, LiveDraftGame, LiveDraftSession

module_logger = logging.getLogger("live_draft.draft_diagnostics")


class DraftDiagnostics:
    """Captures a per-game draft timeline for analysis."""

    def __init__(self, output_dir: Optional[Path] = None, enabled: bool = False):
        """Initialize draft diagnostics.

        Args:
            output_dir: Directory to save diagnostic files. Defaults to logs/drafts/
            enabled: Whether capture is active. Can be controlled via DRAFT_DIAGNOSTICS env var.
        """
        env_enabled = os.environ.get("DRAFT_DIAGNOSTICS", "").lower()
        if env_enabled == "true":
            enabled = True
        elif env_enabled == "false":
            enabled = False

        self.enabled = enabled
        self.output_dir = Path(output_dir) if output_dir else Path("logs") / "drafts"
        self.entries: list[dict] = []
        self.session_id: str = ""
        self.game_id: str = ""
        self._metadata: dict = {}

        if self.enabled:
            self.output_dir.mkdir(parents=True, exist_ok=True)

    def start_game(self, session: LiveDraftSession, game: LiveDraftGame):
        """Begin a new timeline for a game entering drafting."""
        if not self.enabled:
            return

        self.session_id = session.id
        self.game_id = game.id
        self.entries = []
        self._metadata = {
            "session_id": session.id,
            "session_name": session.name,
            "game_id": game.id,
            "game_number": game.game_number,
            "draft_mode": session.draft_mode.value,
            "blue_side_team": game.blue_side_team.value,
            "team1_name": session.team1_name,
            "team2_name": session.team2_name,
            "ban_time_seconds": session.ban_time_seconds,
            "pick_time_seconds": session.pick_time_seconds,
            "started_at": datetime.now().isoformat(),
        }
        self.entries.append({
            "event": "game_start",
            "timestamp": datetime.now().isoformat(),
            **self._metadata,
        })

    def log_action(self, action: DraftActionRecord):
        """Log a committed ban, pick or timeout."""
        if not self.enabled:
            return

        self.entries.append({
            "event": "action",
            "timestamp": datetime.now().isoformat(),
            "action_index": action.action_index,
            "action_type": action.action_type.value,
            "side": action.team.value,
            "champion_id": action.champion_id,
            "performed_by": action.performed_by,
        })

    def log_rejection(self, team: str, champion_id: Optional[str], error_type: str, message: str):
        """Log a submission refused by the draft rules."""
        if not self.enabled:
            return

        self.entries.append({
            "event": "rejected",
            "timestamp": datetime.now().isoformat(),
            "team": team,
            "champion_id": champion_id,
            "error_type": error_type,
            "message": message,
        })

    def log_race(self, expected_index: int, error_type: str):
        """Log a submission discarded because another writer got there first."""
        if not self.enabled:
            return

        self.entries.append({
            "event": "race",
            "timestamp": datetime.now().isoformat(),
            "expected_index": expected_index,
            "error_type": error_type,
        })

    def log_edit(self, slot: str, original: Optional[str], edited: str):
        if not self.enabled:
            return

        self.entries.append({
            "event": "edit",
            "timestamp": datetime.now().isoformat(),
            "slot": slot,
            "original": original,
            "edited": edited,
        })

    def save(self, suffix: str = "") -> Optional[Path]:
        """Save the timeline to a JSON file.

        Returns:
            Path to saved file, or None if disabled/empty
        """
        if not self.enabled or not self.entries:
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        session_short = self.session_id[:12] if self.session_id else "unknown"
        game_number = self._metadata.get("game_number", 0)
        filename = f"draft_{session_short}_g{game_number}_{timestamp}{suffix}.json"
        output_path = self.output_dir / filename

        with open(output_path, "w") as f:
            json.dump({
                "metadata": self._metadata,
                "summary": self._compute_summary(),
                "entries": self.entries,
            }, f, indent=2)

        module_logger.info(f"Draft diagnostics saved: {output_path}")
        return output_path

    def _compute_summary(self) -> dict:
        """Compute summary counts from logged entries."""
        actions = [e for e in self.entries if e["event"] == "action"]
        types = Counter(e["action_type"] for e in actions)
        rejections = Counter(e["error_type"] for e in self.entries if e["event"] == "rejected")
        return {
            "total_actions": len(actions),
            "bans": types.get("ban", 0),
            "picks": types.get("pick", 0),
            "timeouts": types.get("timeout", 0),
            "timeouts_by_side": dict(
                Counter(e["side"] for e in actions if e["action_type"] == "timeout")
            ),
            "rejections": dict(rejections),
            "races": sum(1 for e in self.entries if e["event"] == "race"),
            "edits": sum(1 for e in self.entries if e["event"] == "edit"),
        }
