"""
SQL store — match snapshots and players as JSON payloads via SQLAlchemy.
Works with SQLite (default) and PostgreSQL.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import sqlalchemy as sa
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError

from rallylog.exceptions import MatchNotFoundError, PersistenceError, PlayerNotFoundError
from rallylog.models.match import Match
from rallylog.models.player import Player
from rallylog.storage.base import MatchStore

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS matches (
        id VARCHAR(64) PRIMARY KEY,
        player1_id VARCHAR(64) NOT NULL,
        player2_id VARCHAR(64) NOT NULL,
        status VARCHAR(20) NOT NULL,
        payload TEXT NOT NULL,
        created_at VARCHAR(40) NOT NULL,
        updated_at VARCHAR(40) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS players (
        id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(80) NOT NULL,
        payload TEXT NOT NULL,
        updated_at VARCHAR(40) NOT NULL
    )
    """,
)

UPSERT_MATCH = sa.text("""
    INSERT INTO matches (id, player1_id, player2_id, status, payload, created_at, updated_at)
    VALUES (:id, :player1_id, :player2_id, :status, :payload, :created_at, :updated_at)
    ON CONFLICT (id) DO UPDATE SET
        status = excluded.status,
        payload = excluded.payload,
        updated_at = excluded.updated_at
""")

UPSERT_PLAYER = sa.text("""
    INSERT INTO players (id, name, payload, updated_at)
    VALUES (:id, :name, :payload, :updated_at)
    ON CONFLICT (id) DO UPDATE SET
        name = excluded.name,
        payload = excluded.payload,
        updated_at = excluded.updated_at
""")


class SqlMatchStore(MatchStore):
    """Store backed by any SQLAlchemy URL, e.g. ``sqlite:///./rallylog.db``."""

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        self.init_db()

    def init_db(self) -> None:
        with self._begin("create schema") as conn:
            for statement in SCHEMA:
                conn.execute(sa.text(statement))

    @contextmanager
    def _begin(self, action: str) -> Iterator[sa.Connection]:
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.exception("Database error during %s", action)
            raise PersistenceError(f"Could not {action}: {exc}") from exc

    # ── Matches ──────────────────────────────────────────────────────────────

    def _put_match(self, match: Match) -> None:
        with self._begin(f"save match {match.id}") as conn:
            conn.execute(UPSERT_MATCH, {
                "id": match.id,
                "player1_id": match.settings.player1_id,
                "player2_id": match.settings.player2_id,
                "status": match.status.value,
                "payload": match.model_dump_json(),
                "created_at": match.created_at.isoformat(),
                "updated_at": match.updated_at.isoformat(),
            })
        logger.debug("Saved match %s (%d points)", match.id, len(match.log))

    def load_match(self, match_id: str) -> Match:
        with self._begin(f"load match {match_id}") as conn:
            row = conn.execute(
                sa.text("SELECT payload FROM matches WHERE id = :id"), {"id": match_id}
            ).first()
        if row is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return Match.model_validate_json(row[0])

    def list_matches(self, player_id: Optional[str] = None) -> list[Match]:
        query = "SELECT payload FROM matches"
        params = {}
        if player_id:
            query += " WHERE player1_id = :pid OR player2_id = :pid"
            params["pid"] = player_id
        query += " ORDER BY created_at"
        with self._begin("list matches") as conn:
            rows = conn.execute(sa.text(query), params).all()
        return [Match.model_validate_json(row[0]) for row in rows]

    def delete_match(self, match_id: str) -> None:
        with self._begin(f"delete match {match_id}") as conn:
            deleted = conn.execute(sa.text("DELETE FROM matches WHERE id = :id"), {"id": match_id}).rowcount
        if deleted == 0:
            raise MatchNotFoundError(f"Match {match_id} not found")

    # ── Players ──────────────────────────────────────────────────────────────

    def _put_player(self, player: Player) -> None:
        with self._begin(f"save player {player.id}") as conn:
            conn.execute(UPSERT_PLAYER, {
                "id": player.id,
                "name": player.name,
                "payload": player.model_dump_json(),
                "updated_at": player.updated_at.isoformat(),
            })

    def load_player(self, player_id: str) -> Player:
        with self._begin(f"load player {player_id}") as conn:
            row = conn.execute(
                sa.text("SELECT payload FROM players WHERE id = :id"), {"id": player_id}
            ).first()
        if row is None:
            raise PlayerNotFoundError(f"Player {player_id} not found")
        return Player.model_validate_json(row[0])

    def list_players(self) -> list[Player]:
        with self._begin("list players") as conn:
            rows = conn.execute(sa.text("SELECT payload FROM players ORDER BY name")).all()
        return [Player.model_validate_json(row[0]) for row in rows]

    def delete_player(self, player_id: str) -> None:
        with self._begin(f"delete player {player_id}") as conn:
            deleted = conn.execute(sa.text("DELETE FROM players WHERE id = :id"), {"id": player_id}).rowcount
        if deleted == 0:
            raise PlayerNotFoundError(f"Player {player_id} not found")
