"""Repositories for the message log, knowledge notes and session state."""

import json
from typing import List, Optional, Tuple

import structlog

from ..conversation.models import Message, SessionState
from ..knowledge.models import Note
from ..utils.clock import now_ms
from .database import DatabaseManager

logger = structlog.get_logger()


class MessageRepository:
    """Append-only message log, one logical log per session."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository."""
        self.db = db_manager

    async def append(
        self,
        session_id: str,
        role: str,
        content: str,
        timestamp: Optional[int] = None,
    ) -> Message:
        """Insert a message and return it with its row id."""
        message = Message(
            role=role,
            content=content,
            timestamp=timestamp if timestamp is not None else now_ms(),
            session_id=session_id,
        )
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO messages (session_id, role, content, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                (session_id, message.role, message.content, message.timestamp),
            )
            await conn.commit()
            row_id = cursor.lastrowid

        return Message(
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            id=row_id,
            session_id=session_id,
        )

    async def recent(
        self,
        session_id: str,
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[Message]:
        """Return up to ``limit`` newest messages in chronological order.

        With ``before_id`` only rows inserted before that id are considered.
        """
        if limit <= 0:
            return []

        query = "SELECT * FROM messages WHERE session_id = ?"
        params: list[object] = [session_id]
        if before_id is not None:
            query += " AND id < ?"
            params.append(before_id)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        async with self.db.get_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()

        return [Message.from_row(row) for row in reversed(rows)]

    async def count(self, session_id: str) -> int:
        """Count messages stored for a session."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM messages WHERE session_id = ?",
                (session_id,),
            )
            row = await cursor.fetchone()
            return row[0]

    async def session_ids(self) -> List[str]:
        """List every session that has at least one message."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT DISTINCT session_id FROM messages ORDER BY session_id"
            )
            rows = await cursor.fetchall()
            return [row[0] for row in rows]

    async def trim(self, session_id: str, keep: int) -> Tuple[int, int]:
        """Delete all but the ``keep`` most recent messages of a session.

        Only rows that existed when the trim started are candidates, so a
        message inserted concurrently is never removed. Ties on timestamp are
        broken by row id.

        Returns:
            (deleted, remaining) row counts.
        """
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT MAX(id) FROM messages WHERE session_id = ?",
                (session_id,),
            )
            row = await cursor.fetchone()
            boundary = row[0]
            if boundary is None:
                return 0, 0

            cursor = await conn.execute(
                """
                DELETE FROM messages
                WHERE session_id = ?
                  AND id <= ?
                  AND id NOT IN (
                      SELECT id FROM messages
                      WHERE session_id = ? AND id <= ?
                      ORDER BY timestamp DESC, id DESC
                      LIMIT ?
                  )
                """,
                (session_id, boundary, session_id, boundary, keep),
            )
            deleted = cursor.rowcount
            await conn.commit()

            cursor = await conn.execute(
                "SELECT COUNT(*) FROM messages WHERE session_id = ?",
                (session_id,),
            )
            row = await cursor.fetchone()
            remaining = row[0]

        if deleted:
            logger.info(
                "Trimmed message log",
                session_id=session_id,
                deleted=deleted,
                remaining=remaining,
            )
        return deleted, remaining


class NoteRepository:
    """Knowledge notes data access."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository."""
        self.db = db_manager

    async def add(self, session_id: str, note: Note) -> Note:
        """Insert a note and return it with its row id."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO knowledge_notes
                    (session_id, topic, content, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    note.topic,
                    note.content,
                    note.created_at,
                    note.updated_at,
                ),
            )
            await conn.commit()
            row_id = cursor.lastrowid

        return Note(
            topic=note.topic,
            content=note.content,
            created_at=note.created_at,
            updated_at=note.updated_at,
            session_id=session_id,
            id=row_id,
        )

    async def recent(self, session_id: str, limit: int = 50) -> List[Note]:
        """Newest notes first."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM knowledge_notes
                WHERE session_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (session_id, limit),
            )
            rows = await cursor.fetchall()
            return [Note.from_row(row) for row in rows]


class SessionStateRepository:
    """One JSON record per session, always overwritten whole."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository."""
        self.db = db_manager

    async def get(self, session_id: str) -> Optional[SessionState]:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT data FROM session_state WHERE session_id = ?",
                (session_id,),
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return SessionState.model_validate(json.loads(row["data"]))

    async def put(self, session_id: str, state: SessionState) -> None:
        async with self.db.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO session_state (session_id, data, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                (session_id, json.dumps(state.to_record()), now_ms()),
            )
            await conn.commit()
