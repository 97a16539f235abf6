"""DuckDB-based persistence for live draft sessions."""

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional

import duckdb
import pandas as pd

from live_draft.errors import NotFound, SlotAlreadyFilled, StaleWrite
from live_draft.models.draft import GameStatus, SessionStatus
from live_draft.models.session import (
    ChatMessage,
    DraftActionRecord,
    LiveDraftGame,
    LiveDraftSession,
    Participant,
    UnavailableChampion,
)
from live_draft.services.draft_action_processor import ActionOutcome

logger = logging.getLogger(__name__)

SESSIONS = "live_draft_sessions"
GAMES = "live_draft_games"
ACTIONS = "live_draft_actions"
LEDGER = "live_draft_unavailable_champions"
PARTICIPANTS = "live_draft_participants"
MESSAGES = "live_draft_messages"

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {SESSIONS} (
    id VARCHAR NOT NULL,
    name VARCHAR NOT NULL,
    draft_mode VARCHAR NOT NULL,
    planned_games INTEGER NOT NULL,
    ban_time_seconds INTEGER NOT NULL,
    pick_time_seconds INTEGER NOT NULL,
    invite_token VARCHAR NOT NULL,
    created_by VARCHAR,
    team1_name VARCHAR,
    team2_name VARCHAR,
    team1_captain_id VARCHAR,
    team2_captain_id VARCHAR,
    team1_captain_display_name VARCHAR,
    team2_captain_display_name VARCHAR,
    team1_captain_avatar_url VARCHAR,
    team2_captain_avatar_url VARCHAR,
    team1_captain_role VARCHAR,
    team2_captain_role VARCHAR,
    team1_side VARCHAR,
    team2_side VARCHAR,
    team1_ready BOOLEAN NOT NULL,
    team2_ready BOOLEAN NOT NULL,
    team1_linked_draft_id VARCHAR,
    team2_linked_draft_id VARCHAR,
    team1_linked_team_id VARCHAR,
    team2_linked_team_id VARCHAR,
    team1_linked_enemy_id VARCHAR,
    team2_linked_enemy_id VARCHAR,
    status VARCHAR NOT NULL,
    current_game_number INTEGER NOT NULL,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS {GAMES} (
    id VARCHAR NOT NULL,
    session_id VARCHAR NOT NULL,
    game_number INTEGER NOT NULL,
    blue_side_team VARCHAR NOT NULL,
    status VARCHAR NOT NULL,
    current_phase VARCHAR,
    current_turn VARCHAR,
    current_action_index INTEGER NOT NULL,
    turn_started_at TIMESTAMP,
    version INTEGER NOT NULL,
    blue_bans VARCHAR[],
    red_bans VARCHAR[],
    blue_picks VARCHAR[],
    red_picks VARCHAR[],
    edited_picks VARCHAR,
    winner VARCHAR,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS {ACTIONS} (
    id VARCHAR NOT NULL,
    game_id VARCHAR NOT NULL,
    action_index INTEGER NOT NULL,
    action_type VARCHAR NOT NULL,
    team VARCHAR NOT NULL,
    champion_id VARCHAR,
    performed_by VARCHAR,
    created_at TIMESTAMP NOT NULL,
    UNIQUE (game_id, action_index)
);

CREATE TABLE IF NOT EXISTS {LEDGER} (
    session_id VARCHAR NOT NULL,
    champion_id VARCHAR NOT NULL,
    from_game INTEGER NOT NULL,
    reason VARCHAR NOT NULL,
    team VARCHAR NOT NULL,
    side VARCHAR NOT NULL,
    created_at TIMESTAMP NOT NULL,
    UNIQUE (session_id, champion_id, team, reason)
);

CREATE TABLE IF NOT EXISTS {PARTICIPANTS} (
    id VARCHAR NOT NULL,
    session_id VARCHAR NOT NULL,
    participant_type VARCHAR NOT NULL,
    user_id VARCHAR,
    team VARCHAR,
    display_name VARCHAR,
    is_captain BOOLEAN NOT NULL,
    is_connected BOOLEAN NOT NULL,
    last_seen_at TIMESTAMP NOT NULL,
    joined_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS {MESSAGES} (
    id VARCHAR NOT NULL,
    session_id VARCHAR NOT NULL,
    display_name VARCHAR NOT NULL,
    content VARCHAR NOT NULL,
    user_id VARCHAR,
    created_at TIMESTAMP NOT NULL
);
"""

# Columns that need an explicit cast so all-NULL lists keep their type
_LIST_COLUMNS = {"blue_bans", "red_bans", "blue_picks", "red_picks"}


def _placeholder(column: str) -> str:
    return "?::VARCHAR[]" if column in _LIST_COLUMNS else "?"


class LiveDraftRepository:
    """Data access layer for live draft state.

    One DuckDB connection is shared by every request and the turn timer, so
    all access goes through a lock.
    """

    def __init__(self, database_path: str = ":memory:"):
        """Open (or create) the live draft database.

        Args:
            database_path: Path to a DuckDB file, or ``:memory:``
        """
        self._db_path = database_path
        if database_path != ":memory:":
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(database_path)
        self._lock = threading.RLock()
        with self._lock:
            self._conn.execute(SCHEMA)
        logger.info(f"LiveDraftRepository: Using {database_path}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    def _fetch(self, sql: str, params: Optional[list] = None) -> list[dict]:
        """Execute a query and return rows as dicts with native Python values."""
        with self._lock:
            cursor = self._conn.execute(sql, params or [])
            columns = [d[0] for d in cursor.description]
            rows = cursor.fetchall()
        return [dict(zip(columns, row)) for row in rows]

    def _query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        """Execute a listing query and return JSON-serializable dicts."""
        with self._lock:
            df = self._conn.execute(sql, params or []).df()

        for col in df.columns:
            if pd.api.types.is_datetime64_any_dtype(df[col]):
                df[col] = df[col].dt.strftime("%Y-%m-%dT%H:%M:%S")

        # NaN/NaT -> None for JSON
        df = df.astype(object).where(pd.notna(df), None)
        return df.to_dict(orient="records")

    def _insert(self, table: str, row: dict) -> None:
        columns = list(row)
        sql = (
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(_placeholder(c) for c in columns)})"
        )
        self._conn.execute(sql, [row[c] for c in columns])

    def _update(
        self,
        table: str,
        row: dict,
        where: str,
        where_params: list,
        bump: Optional[str] = None,
    ) -> int:
        """UPDATE every column of ``row`` matching ``where``; returns rows changed.

        ``bump`` names a counter column incremented in place instead of written.
        """
        columns = [c for c in row if c not in ("id", bump)]
        assignments = ", ".join(f"{c} = {_placeholder(c)}" for c in columns)
        if bump:
            assignments += f", {bump} = {bump} + 1"
        result = self._conn.execute(
            f"UPDATE {table} SET {assignments} WHERE {where}",
            [row[c] for c in columns] + where_params,
        ).fetchone()
        return result[0] if result else 0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session: LiveDraftSession) -> LiveDraftSession:
        with self._lock:
            self._insert(SESSIONS, session.to_row())
        return session

    def save_session(self, session: LiveDraftSession) -> LiveDraftSession:
        with self._lock:
            changed = self._update(SESSIONS, session.to_row(), "id = ?", [session.id])
        if not changed:
            raise NotFound(f"Session {session.id} not found")
        return session

    def get_session(self, session_id: str) -> LiveDraftSession:
        rows = self._fetch(f"SELECT * FROM {SESSIONS} WHERE id = ?", [session_id])
        if not rows:
            raise NotFound(f"Session {session_id} not found")
        return LiveDraftSession.from_row(rows[0])

    def get_session_by_invite(self, invite_token: str) -> LiveDraftSession:
        rows = self._fetch(f"SELECT * FROM {SESSIONS} WHERE invite_token = ?", [invite_token])
        if not rows:
            raise NotFound("Invite link is invalid")
        return LiveDraftSession.from_row(rows[0])

    def delete_session(self, session_id: str) -> None:
        """Remove a session and everything recorded under it."""
        with self._lock:
            self._conn.begin()
            try:
                self._conn.execute(f"DELETE FROM {LEDGER} WHERE session_id = ?", [session_id])
                self._conn.execute(f"DELETE FROM {MESSAGES} WHERE session_id = ?", [session_id])
                self._conn.execute(
                    f"DELETE FROM {ACTIONS} WHERE game_id IN "
                    f"(SELECT id FROM {GAMES} WHERE session_id = ?)",
                    [session_id],
                )
                self._conn.execute(f"DELETE FROM {GAMES} WHERE session_id = ?", [session_id])
                self._conn.execute(f"DELETE FROM {PARTICIPANTS} WHERE session_id = ?", [session_id])
                self._conn.execute(f"DELETE FROM {SESSIONS} WHERE id = ?", [session_id])
            except Exception:
                self._conn.rollback()
                raise
            self._conn.commit()

    def list_sessions(self, status: Optional[str] = None, limit: int = 50) -> list[dict]:
        """Recent sessions for a lobby browser, newest first."""
        where = "WHERE s.status = ?" if status else ""
        params = [status] if status else []
        return self._query(
            f"""
            SELECT
                s.id,
                s.name,
                s.draft_mode,
                s.status,
                s.planned_games,
                s.current_game_number,
                s.team1_name,
                s.team2_name,
                s.created_at,
                COUNT(g.id) FILTER (WHERE g.status = 'completed') AS completed_games
            FROM {SESSIONS} s
            LEFT JOIN {GAMES} g ON g.session_id = s.id
            {where}
            GROUP BY ALL
            ORDER BY s.created_at DESC
            LIMIT {int(limit)}
            """,
            params,
        )

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    def create_game(self, game: LiveDraftGame) -> LiveDraftGame:
        with self._lock:
            self._insert(GAMES, game.to_row())
        return game

    def _write_game(
        self, game: LiveDraftGame, where: str, where_params: list
    ) -> Optional[LiveDraftGame]:
        """UPDATE a game row and bump its version; None if ``where`` matched nothing."""
        if not self._update(GAMES, game.to_row(), where, where_params, bump="version"):
            return None
        version = self._conn.execute(
            f"SELECT version FROM {GAMES} WHERE id = ?", [game.id]
        ).fetchone()[0]
        return replace(game, version=version)

    def save_game(self, game: LiveDraftGame, expected_version: Optional[int] = None) -> LiveDraftGame:
        """Write a game row.

        Args:
            game: New game state
            expected_version: When set, only write if the stored row is still at
                this version (slot fills that may race live actions)

        Returns:
            The game as stored, carrying its new version

        Raises:
            NotFound: No such game
            StaleWrite: The stored row was written since ``expected_version``
        """
        with self._lock:
            if expected_version is None:
                saved = self._write_game(game, "id = ?", [game.id])
            else:
                saved = self._write_game(game, "id = ? AND version = ?", [game.id, expected_version])
        if saved is None:
            if expected_version is not None:
                raise StaleWrite(f"Game {game.id} changed since version {expected_version}")
            raise NotFound(f"Game {game.id} not found")
        return saved

    def get_game(self, game_id: str) -> LiveDraftGame:
        rows = self._fetch(f"SELECT * FROM {GAMES} WHERE id = ?", [game_id])
        if not rows:
            raise NotFound(f"Game {game_id} not found")
        return LiveDraftGame.from_row(rows[0])

    def get_game_by_number(self, session_id: str, game_number: int) -> Optional[LiveDraftGame]:
        rows = self._fetch(
            f"SELECT * FROM {GAMES} WHERE session_id = ? AND game_number = ?",
            [session_id, game_number],
        )
        return LiveDraftGame.from_row(rows[0]) if rows else None

    def list_games(self, session_id: str) -> list[LiveDraftGame]:
        rows = self._fetch(
            f"SELECT * FROM {GAMES} WHERE session_id = ? ORDER BY game_number",
            [session_id],
        )
        return [LiveDraftGame.from_row(r) for r in rows]

    def list_drafting_games(self) -> list[LiveDraftGame]:
        """Games with a running clock, across all open sessions."""
        rows = self._fetch(
            f"""
            SELECT g.* FROM {GAMES} g
            JOIN {SESSIONS} s ON s.id = g.session_id
            WHERE g.status = ? AND s.status NOT IN (?, ?)
            ORDER BY g.turn_started_at
            """,
            [
                GameStatus.DRAFTING.value,
                SessionStatus.CANCELLED.value,
                SessionStatus.COMPLETED.value,
            ],
        )
        return [LiveDraftGame.from_row(r) for r in rows]

    def delete_pending_games(self, session_id: str) -> int:
        with self._lock:
            result = self._conn.execute(
                f"DELETE FROM {GAMES} WHERE session_id = ? AND status = ?",
                [session_id, GameStatus.PENDING.value],
            ).fetchone()
        return result[0] if result else 0

    def commit_action(self, outcome: ActionOutcome) -> LiveDraftGame:
        """Persist one draft step atomically.

        The game row is only updated if it is still drafting at the index and
        version the outcome was prepared against, so neither a racing
        submission for the same step nor a slot fill in between is overwritten.

        Raises:
            StaleWrite: The game moved on, stopped drafting or was written meanwhile
            SlotAlreadyFilled: An action for this index already exists
        """
        game = outcome.game
        with self._lock:
            self._conn.begin()
            try:
                saved = self._write_game(
                    game,
                    "id = ? AND current_action_index = ? AND status = ? AND version = ?",
                    [
                        game.id,
                        outcome.expected_index,
                        GameStatus.DRAFTING.value,
                        outcome.expected_version,
                    ],
                )
                if saved is None:
                    raise StaleWrite(
                        f"Game {game.id} is no longer at action {outcome.expected_index} "
                        f"version {outcome.expected_version}"
                    )
                self._insert(ACTIONS, outcome.action.to_row())
            except duckdb.ConstraintException as e:
                self._conn.rollback()
                raise SlotAlreadyFilled(
                    f"Action {outcome.expected_index} of game {game.id} already recorded"
                ) from e
            except Exception:
                self._conn.rollback()
                raise
            self._conn.commit()
        return saved

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def list_actions(self, game_id: str) -> list[DraftActionRecord]:
        rows = self._fetch(
            f"SELECT * FROM {ACTIONS} WHERE game_id = ? ORDER BY action_index",
            [game_id],
        )
        return [DraftActionRecord.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Unavailable champions ledger
    # ------------------------------------------------------------------

    def add_unavailable(self, entries: list[UnavailableChampion]) -> int:
        """Append ledger entries; duplicates are ignored. Returns rows added."""
        if not entries:
            return 0
        added = 0
        with self._lock:
            for entry in entries:
                row = entry.to_row()
                columns = list(row)
                result = self._conn.execute(
                    f"INSERT INTO {LEDGER} ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)}) ON CONFLICT DO NOTHING",
                    [row[c] for c in columns],
                ).fetchone()
                added += result[0] if result else 0
        return added

    def get_unavailable(self, session_id: str) -> list[UnavailableChampion]:
        rows = self._fetch(
            f"SELECT * FROM {LEDGER} WHERE session_id = ? ORDER BY from_game, created_at",
            [session_id],
        )
        return [UnavailableChampion.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def add_participant(self, participant: Participant) -> Participant:
        with self._lock:
            self._insert(PARTICIPANTS, participant.to_row())
        return participant

    def save_participant(self, participant: Participant) -> Participant:
        with self._lock:
            changed = self._update(PARTICIPANTS, participant.to_row(), "id = ?", [participant.id])
        if not changed:
            raise NotFound(f"Participant {participant.id} not found")
        return participant

    def get_participant(self, participant_id: str) -> Participant:
        rows = self._fetch(f"SELECT * FROM {PARTICIPANTS} WHERE id = ?", [participant_id])
        if not rows:
            raise NotFound(f"Participant {participant_id} not found")
        return Participant.from_row(rows[0])

    def list_participants(self, session_id: str) -> list[Participant]:
        rows = self._fetch(
            f"SELECT * FROM {PARTICIPANTS} WHERE session_id = ? ORDER BY joined_at",
            [session_id],
        )
        return [Participant.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def add_message(self, message: ChatMessage) -> ChatMessage:
        with self._lock:
            self._insert(MESSAGES, message.to_row())
        return message

    def count_messages(self, session_id: str) -> int:
        rows = self._fetch(
            f"SELECT COUNT(*) AS n FROM {MESSAGES} WHERE session_id = ?", [session_id]
        )
        return rows[0]["n"]

    def list_messages(self, session_id: str) -> list[ChatMessage]:
        rows = self._fetch(
            f"SELECT * FROM {MESSAGES} WHERE session_id = ? ORDER BY created_at",
            [session_id],
        )
        return [ChatMessage.from_row(r) for r in rows]
