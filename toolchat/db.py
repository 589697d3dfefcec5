"""SQLite persistence layer."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from toolchat.models import ROLES, ChatMessage

SCHEMA_VERSION = 1


class Database:
    """Small SQLite wrapper with explicit schema management.

    Message rows are append-only; the only other writes replace a session's
    settings or timestamps wholesale.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                model TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                expires_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                ts INTEGER NOT NULL,
                FOREIGN KEY(session_id) REFERENCES sessions(session_id)
            );

            CREATE INDEX IF NOT EXISTS idx_messages_session_ts ON messages(session_id, ts, id);
            """
        )

    def get_session(self, session_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT session_id, model, created_at, expires_at FROM sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        return dict(row) if row else None

    def get_or_create_session(
        self, session_id: str, default_model: str, now: int, expires_at: int
    ) -> dict[str, Any]:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sessions(session_id, model, created_at, expires_at)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(session_id) DO NOTHING
                """,
                (session_id, default_model, now, expires_at),
            )
            row = conn.execute(
                "SELECT session_id, model, created_at, expires_at FROM sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        return dict(row)

    def set_model(self, session_id: str, model: str, expires_at: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE sessions SET model = ?, expires_at = MAX(created_at, ?) WHERE session_id = ?",
                (model, expires_at, session_id),
            )

    def touch(self, session_id: str, expires_at: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE sessions SET expires_at = MAX(created_at, ?) WHERE session_id = ?",
                (expires_at, session_id),
            )

    def add_message(self, session_id: str, message: ChatMessage) -> None:
        if message.role not in ROLES:
            raise ValueError(f"Unsupported role: {message.role!r}")
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO messages(session_id, role, content, ts) VALUES (?, ?, ?, ?)",
                (session_id, message.role, message.content, message.ts),
            )

    def list_messages(self, session_id: str) -> list[ChatMessage]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT role, content, ts
                FROM messages
                WHERE session_id = ?
                ORDER BY ts ASC, id ASC
                """,
                (session_id,),
            ).fetchall()
        return [ChatMessage(role=row["role"], content=row["content"], ts=row["ts"]) for row in rows]

    def latest_ts(self, session_id: str) -> int | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT MAX(ts) AS ts FROM messages WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        return row["ts"] if row and row["ts"] is not None else None

    def get_recent_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT role, content, ts
                FROM messages
                WHERE session_id = ?
                ORDER BY ts DESC, id DESC
                LIMIT ?
                """,
                (session_id, limit),
            ).fetchall()
        ordered = list(reversed(rows))
        return [ChatMessage(role=row["role"], content=row["content"], ts=row["ts"]) for row in ordered]

    def reset_session(self, session_id: str, now: int, expires_at: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
            conn.execute(
                "UPDATE sessions SET created_at = ?, expires_at = ? WHERE session_id = ?",
                (now, expires_at, session_id),
            )

    def purge_expired(self, now: int) -> int:
        """Drop sessions (and their messages) whose expiry has passed."""

        with self._connect() as conn:
            conn.execute(
                """
                DELETE FROM messages
                WHERE session_id IN (SELECT session_id FROM sessions WHERE expires_at < ?)
                """,
                (now,),
            )
            cur = conn.execute("DELETE FROM sessions WHERE expires_at < ?", (now,))
            return int(cur.rowcount)
