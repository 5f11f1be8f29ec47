"""Async SQLite transcript store using aiosqlite.

Owns users, debate sessions, their append-only messages, and per-user
stats. Every ``aiosqlite.Error`` is re-raised as ``PersistenceError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from data.models import (
    DebateMode,
    MessageRecord,
    Position,
    Role,
    SessionRecord,
    SessionStatus,
    StatsDelta,
    StatsRecord,
    UserRecord,
)
from errors import PersistenceError

logger = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS users (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    username    TEXT    NOT NULL UNIQUE,
    created_at  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS debate_sessions (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id        INTEGER REFERENCES users(id),
    mode           TEXT    NOT NULL,
    topic          TEXT    NOT NULL,
    human_position TEXT,
    status         TEXT    NOT NULL DEFAULT 'active',
    winner         TEXT,
    judge_comment  TEXT,
    created_at     TEXT    NOT NULL,
    finished_at    TEXT
);

CREATE TABLE IF NOT EXISTS debate_messages (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id  INTEGER NOT NULL REFERENCES debate_sessions(id),
    role        TEXT    NOT NULL,
    content     TEXT    NOT NULL,
    created_at  TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_debate_messages_session
    ON debate_messages(session_id, id);

CREATE TABLE IF NOT EXISTS user_stats (
    user_id       INTEGER PRIMARY KEY REFERENCES users(id),
    total_debates INTEGER NOT NULL DEFAULT 0,
    wins          INTEGER NOT NULL DEFAULT 0,
    losses        INTEGER NOT NULL DEFAULT 0,
    draws         INTEGER NOT NULL DEFAULT 0
);
"""


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except aiosqlite.Error as exc:
        logger.warning("Store operation %s failed: %s", operation, exc)
        raise PersistenceError(f"{operation} failed: {exc}") from exc


def _session_from_row(row: aiosqlite.Row) -> SessionRecord:
    return SessionRecord(
        id=row["id"],
        user_id=row["user_id"],
        mode=row["mode"],
        topic=row["topic"],
        human_position=row["human_position"],
        status=row["status"],
        winner=row["winner"],
        judge_comment=row["judge_comment"],
        created_at=row["created_at"],
        finished_at=row["finished_at"],
    )


def _message_from_row(row: aiosqlite.Row) -> MessageRecord:
    return MessageRecord(
        id=row["id"],
        session_id=row["session_id"],
        role=row["role"],
        content=row["content"],
        created_at=row["created_at"],
    )


class DebateDatabase:
    """Async wrapper around an SQLite database for debate persistence."""

    def __init__(self, db_path: str | Path = "data/debates.db") -> None:
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._session_locks: dict[int, asyncio.Lock] = {}
        self._lock_users: Counter[int] = Counter()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open connection and ensure schema exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with _store_errors("connect"):
            self._conn = await aiosqlite.connect(str(self.db_path))
            self._conn.row_factory = aiosqlite.Row
            await self._conn.executescript(_SCHEMA)
            await self._conn.commit()
        logger.info("Database connected: %s", self.db_path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    @asynccontextmanager
    async def session_lock(self, session_id: int) -> AsyncIterator[None]:
        """Serialize read-then-write sequences against a single session."""
        lock = self._session_locks.setdefault(session_id, asyncio.Lock())
        # Holders and waiters both count; the lock is dropped once none remain
        self._lock_users[session_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._session_locks[session_id]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, username: str) -> UserRecord:
        """Insert a user together with its zeroed stats row."""
        record = UserRecord(username=username)
        with _store_errors("create_user"):
            cur = await self.conn.execute(
                "INSERT INTO users (username, created_at) VALUES (?, ?)",
                (record.username, record.created_at.isoformat()),
            )
            user_id = cur.lastrowid
            await self.conn.execute(
                "INSERT INTO user_stats (user_id) VALUES (?)", (user_id,)
            )
            await self.conn.commit()
        return record.model_copy(update={"id": user_id})

    async def get_user(self, user_id: int) -> UserRecord | None:
        with _store_errors("get_user"):
            cur = await self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = await cur.fetchone()
        if row is None:
            return None
        return UserRecord(id=row["id"], username=row["username"], created_at=row["created_at"])

    async def get_user_by_username(self, username: str) -> UserRecord | None:
        with _store_errors("get_user_by_username"):
            cur = await self.conn.execute(
                "SELECT * FROM users WHERE username = ?", (username,)
            )
            row = await cur.fetchone()
        if row is None:
            return None
        return UserRecord(id=row["id"], username=row["username"], created_at=row["created_at"])

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        user_id: int | None,
        mode: DebateMode,
        topic: str,
        human_position: Position | None = None,
    ) -> SessionRecord:
        """Insert a new active session and return it with its id."""
        record = SessionRecord(
            user_id=user_id, mode=mode, topic=topic, human_position=human_position
        )
        with _store_errors("create_session"):
            cur = await self.conn.execute(
                "INSERT INTO debate_sessions "
                "(user_id, mode, topic, human_position, status, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    record.user_id,
                    record.mode.value,
                    record.topic,
                    record.human_position.value if record.human_position else None,
                    record.status.value,
                    record.created_at.isoformat(),
                ),
            )
            await self.conn.commit()
        return record.model_copy(update={"id": cur.lastrowid})

    async def get_session(self, session_id: int) -> SessionRecord | None:
        with _store_errors("get_session"):
            cur = await self.conn.execute(
                "SELECT * FROM debate_sessions WHERE id = ?", (session_id,)
            )
            row = await cur.fetchone()
        if row is None:
            return None
        return _session_from_row(row)

    async def update_session(
        self,
        record: SessionRecord,
        *,
        expected_status: SessionStatus | None = None,
    ) -> bool:
        """Write status/outcome fields back.

        With *expected_status* the write only applies while the stored row
        still has that status; returns ``False`` when nothing was updated.
        """
        sql = (
            "UPDATE debate_sessions SET status = ?, winner = ?, judge_comment = ?, "
            "finished_at = ? WHERE id = ?"
        )
        params: list = [
            record.status.value,
            record.winner.value if record.winner else None,
            record.judge_comment,
            record.finished_at.isoformat() if record.finished_at else None,
            record.id,
        ]
        if expected_status is not None:
            sql += " AND status = ?"
            params.append(expected_status.value)

        with _store_errors("update_session"):
            cur = await self.conn.execute(sql, params)
            await self.conn.commit()
        return cur.rowcount > 0

    async def list_sessions(self, limit: int = 20) -> list[SessionRecord]:
        with _store_errors("list_sessions"):
            cur = await self.conn.execute(
                "SELECT * FROM debate_sessions ORDER BY id DESC LIMIT ?", (limit,)
            )
            rows = await cur.fetchall()
        return [_session_from_row(r) for r in rows]

    async def list_sessions_for_user(self, user_id: int) -> list[SessionRecord]:
        """All sessions owned by *user_id*, most recent first."""
        with _store_errors("list_sessions_for_user"):
            cur = await self.conn.execute(
                "SELECT * FROM debate_sessions WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            )
            rows = await cur.fetchall()
        return [_session_from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def append_message(
        self, session_id: int, role: Role, content: str
    ) -> MessageRecord:
        created_at = datetime.now(timezone.utc)
        with _store_errors("append_message"):
            cur = await self.conn.execute(
                "INSERT INTO debate_messages (session_id, role, content, created_at) "
                "VALUES (?, ?, ?, ?)",
                (session_id, role.value, content, created_at.isoformat()),
            )
            await self.conn.commit()
        return MessageRecord(
            id=cur.lastrowid,
            session_id=session_id,
            role=role,
            content=content,
            created_at=created_at,
        )

    async def list_messages(self, session_id: int) -> list[MessageRecord]:
        """The session's transcript in creation order."""
        with _store_errors("list_messages"):
            cur = await self.conn.execute(
                "SELECT * FROM debate_messages WHERE session_id = ? ORDER BY id",
                (session_id,),
            )
            rows = await cur.fetchall()
        return [_message_from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def get_stats(self, user_id: int) -> StatsRecord | None:
        with _store_errors("get_stats"):
            cur = await self.conn.execute(
                "SELECT * FROM user_stats WHERE user_id = ?", (user_id,)
            )
            row = await cur.fetchone()
        if row is None:
            return None
        return StatsRecord(
            user_id=row["user_id"],
            total_debates=row["total_debates"],
            wins=row["wins"],
            losses=row["losses"],
            draws=row["draws"],
        )

    async def update_stats(self, record: StatsRecord) -> None:
        with _store_errors("update_stats"):
            await self.conn.execute(
                "UPDATE user_stats SET total_debates = ?, wins = ?, losses = ?, draws = ? "
                "WHERE user_id = ?",
                (record.total_debates, record.wins, record.losses, record.draws, record.user_id),
            )
            await self.conn.commit()

    async def apply_stats_delta(self, user_id: int, delta: StatsDelta) -> None:
        """Increment the user's counters in a single statement."""
        with _store_errors("apply_stats_delta"):
            cur = await self.conn.execute(
                "UPDATE user_stats SET total_debates = total_debates + ?, "
                "wins = wins + ?, losses = losses + ?, draws = draws + ? "
                "WHERE user_id = ?",
                (delta.total_debates, delta.wins, delta.losses, delta.draws, user_id),
            )
            if cur.rowcount == 0:
                await self.conn.execute(
                    "INSERT INTO user_stats (user_id, total_debates, wins, losses, draws) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (user_id, delta.total_debates, delta.wins, delta.losses, delta.draws),
                )
            await self.conn.commit()
