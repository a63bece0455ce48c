"""SQLite storage for reading sessions and their chat messages."""

import json
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..history import DEFAULT_TITLE, generate_session_title

ROLES = ("user", "assistant")


class SessionNotFoundError(LookupError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


class SessionStore:
    def __init__(self, db_path: str, clock: Callable[[], datetime] = _utcnow):
        self.db_path = db_path
        self.clock = clock

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self) -> None:
        """Create the tables if needed."""
        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)

        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reading_sessions (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    is_favorite BOOLEAN NOT NULL DEFAULT 0,
                    reading_json TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS reading_messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
                    content TEXT NOT NULL,
                    cards_json TEXT,
                    has_cards BOOLEAN NOT NULL DEFAULT 0,
                    ts INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (session_id) REFERENCES reading_sessions (id) ON DELETE CASCADE
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_user ON reading_sessions(user_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_messages_session ON reading_messages(session_id)")
            conn.commit()

    # -------------------------------------------------------------------
    # writes
    # -------------------------------------------------------------------

    def create_session(self, user_id: str, title: str = DEFAULT_TITLE) -> Dict[str, Any]:
        with self._connect() as conn:
            session = self._insert_session(conn, user_id, title)
            conn.commit()
        return session

    def _insert_session(self, conn: sqlite3.Connection, user_id: str, title: str) -> Dict[str, Any]:
        session_id = str(uuid.uuid4())
        now = _iso(self.clock())
        conn.execute("""
            INSERT INTO reading_sessions (id, user_id, title, is_favorite, reading_json, created_at, updated_at)
            VALUES (?, ?, ?, 0, NULL, ?, ?)
        """, (session_id, user_id, title or DEFAULT_TITLE, now, now))

        return {
            "id": session_id,
            "user_id": user_id,
            "title": title or DEFAULT_TITLE,
            "is_favorite": False,
            "reading": None,
            "created_at": now,
            "updated_at": now,
        }

    def save_message(
        self,
        session_id: str,
        role: str,
        content: str,
        cards: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        with self._connect() as conn:
            message = self._insert_message(conn, session_id, role, content, cards)
            conn.execute(
                "UPDATE reading_sessions SET updated_at = ? WHERE id = ?",
                (message["created_at"], session_id),
            )
            conn.commit()
        return message

    def save_chat(
        self,
        user_id: str,
        messages: Iterable[Dict[str, Any]],
        reading: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> str:
        """Append an exchange to a session, creating the session when no id is given.

        Each message is a dict with ``role``, ``content`` and optional ``cards``.
        The whole exchange is written in one transaction, so a bad message
        leaves no new session behind. A session owned by another user is
        reported as not found. Returns the session id.
        """
        messages = list(messages)
        now = _iso(self.clock())
        with self._connect() as conn:
            if session_id is None:
                first_user = next((m.get("content") for m in messages if m.get("role") == "user"), None)
                session_id = self._insert_session(conn, user_id, generate_session_title(first_user))["id"]
            else:
                row = conn.execute("SELECT user_id FROM reading_sessions WHERE id = ?", (session_id,)).fetchone()
                if row is None or row["user_id"] != user_id:
                    raise SessionNotFoundError(session_id)

            for m in messages:
                self._insert_message(conn, session_id, m.get("role"), m.get("content") or "", m.get("cards"))
            if reading is not None:
                conn.execute(
                    "UPDATE reading_sessions SET reading_json = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(reading), now, session_id),
                )
            else:
                conn.execute("UPDATE reading_sessions SET updated_at = ? WHERE id = ?", (now, session_id))
            conn.commit()

        return session_id

    def _insert_message(
        self,
        conn: sqlite3.Connection,
        session_id: str,
        role: str,
        content: str,
        cards: Optional[List[Dict[str, Any]]],
    ) -> Dict[str, Any]:
        if role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got {role!r}")

        row = conn.execute("SELECT 1 FROM reading_sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            raise SessionNotFoundError(session_id)

        now = self.clock()
        created_at = _iso(now)
        ts = int(now.timestamp() * 1000)
        has_cards = bool(cards)
        cursor = conn.execute("""
            INSERT INTO reading_messages (session_id, role, content, cards_json, has_cards, ts, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (session_id, role, content, json.dumps(cards) if cards is not None else None, has_cards, ts, created_at))

        return {
            "id": cursor.lastrowid,
            "session_id": session_id,
            "role": role,
            "content": content,
            "cards": cards,
            "has_cards": has_cards,
            "timestamp": ts,
            "created_at": created_at,
        }

    def update_session_title(self, session_id: str, title: str) -> Optional[Dict[str, Any]]:
        return self._update(session_id, "title", title)

    def set_favorite(self, session_id: str, is_favorite: bool) -> Optional[Dict[str, Any]]:
        return self._update(session_id, "is_favorite", bool(is_favorite))

    def _update(self, session_id: str, column: str, value: Any) -> Optional[Dict[str, Any]]:
        # column names come from the two callers above, never from user input
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE reading_sessions SET {column} = ?, updated_at = ? WHERE id = ?",
                (value, _iso(self.clock()), session_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_session(session_id)

    def delete_session(self, session_id: str) -> bool:
        with self._connect() as conn:
            conn.execute("DELETE FROM reading_messages WHERE session_id = ?", (session_id,))
            cursor = conn.execute("DELETE FROM reading_sessions WHERE id = ?", (session_id,))
            conn.commit()
            return cursor.rowcount > 0

    # -------------------------------------------------------------------
    # reads
    # -------------------------------------------------------------------

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("""
                SELECT id, user_id, title, is_favorite, reading_json, created_at, updated_at
                FROM reading_sessions WHERE id = ?
            """, (session_id,)).fetchone()
        return _session_from_row(row) if row else None

    def get_user_sessions(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cursor = conn.execute("""
                SELECT id, user_id, title, is_favorite, reading_json, created_at, updated_at
                FROM reading_sessions WHERE user_id = ?
                ORDER BY updated_at DESC, rowid DESC LIMIT ?
            """, (user_id, limit))
            return [_session_from_row(row) for row in cursor.fetchall()]

    def get_session_messages(self, session_id: str) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cursor = conn.execute("""
                SELECT id, session_id, role, content, cards_json, has_cards, ts, created_at
                FROM reading_messages WHERE session_id = ? ORDER BY id
            """, (session_id,))
            messages = []
            for row in cursor.fetchall():
                msg = dict(row)
                msg["cards"] = json.loads(msg.pop("cards_json")) if row["cards_json"] else None
                msg["has_cards"] = bool(msg["has_cards"])
                msg["timestamp"] = msg.pop("ts")
                messages.append(msg)
            return messages

    def count_messages(self, session_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(session_ids)
        counts = {sid: 0 for sid in ids}
        if not ids:
            return counts
        placeholders = ",".join("?" for _ in ids)
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT session_id, COUNT(*) FROM reading_messages WHERE session_id IN ({placeholders}) GROUP BY session_id",
                ids,
            )
            for sid, n in cursor.fetchall():
                counts[sid] = n
        return counts

    def sessions_between(self, user_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """Sessions whose created_at falls within [start, end]."""
        with self._connect() as conn:
            cursor = conn.execute("""
                SELECT id, user_id, title, is_favorite, reading_json, created_at, updated_at
                FROM reading_sessions
                WHERE user_id = ? AND created_at >= ? AND created_at <= ?
                ORDER BY created_at
            """, (user_id, _iso(start), _iso(end)))
            return [_session_from_row(row) for row in cursor.fetchall()]

    def message_contents(self, session_ids: Iterable[str]) -> List[str]:
        ids = list(session_ids)
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT content FROM reading_messages WHERE session_id IN ({placeholders}) ORDER BY id",
                ids,
            )
            return [row[0] or "" for row in cursor.fetchall()]


def _session_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    session = dict(row)
    raw = session.pop("reading_json")
    session["reading"] = json.loads(raw) if raw else None
    # Convert SQLite integer (0/1) back to boolean
    session["is_favorite"] = bool(session["is_favorite"])
    return session
