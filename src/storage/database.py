"""SQLite database manager with a small connection pool and migrations."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional, Tuple

import aiosqlite
import structlog

from ..exceptions import StorageError

logger = structlog.get_logger()

# (version, statements) applied in order; each version runs once.
MIGRATIONS: List[Tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id TEXT NOT NULL,
            role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
            content TEXT NOT NULL,
            timestamp INTEGER NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_messages_session_time
            ON messages (session_id, timestamp, id);

        CREATE TABLE IF NOT EXISTS knowledge_notes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id TEXT NOT NULL,
            topic TEXT NOT NULL,
            content TEXT NOT NULL,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_notes_session
            ON knowledge_notes (session_id, created_at);

        CREATE TABLE IF NOT EXISTS session_state (
            session_id TEXT PRIMARY KEY,
            data TEXT NOT NULL,
            updated_at INTEGER NOT NULL
        );
        """,
    ),
]


class DatabaseManager:
    """Owns the SQLite file, its schema and a pool of connections."""

    def __init__(self, database_url: str, pool_size: int = 3) -> None:
        if not database_url.startswith("sqlite:///"):
            raise ValueError(f"Unsupported database URL: {database_url}")
        self.database_path = Path(database_url[len("sqlite:///") :])
        self._pool_size = pool_size
        self._pool: Optional["asyncio.Queue[aiosqlite.Connection]"] = None
        self._connections: List[aiosqlite.Connection] = []

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def initialize(self) -> None:
        """Create the database file, apply migrations and open the pool."""
        if self._pool is not None:
            return

        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = await self._open_connection()
            await self._run_migrations(conn)
            pool: "asyncio.Queue[aiosqlite.Connection]" = asyncio.Queue()
            self._connections.append(conn)
            pool.put_nowait(conn)
            for _ in range(self._pool_size - 1):
                extra = await self._open_connection()
                self._connections.append(extra)
                pool.put_nowait(extra)
        except aiosqlite.Error as exc:
            await self._close_connections()
            raise StorageError(f"Failed to initialize database: {exc}") from exc

        self._pool = pool
        logger.info(
            "Database initialized",
            path=str(self.database_path),
            pool_size=self._pool_size,
        )

    async def close(self) -> None:
        """Close every pooled connection."""
        await self._close_connections()
        self._pool = None
        logger.info("Database connections closed")

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection; sqlite errors surface as StorageError."""
        if self._pool is None:
            raise StorageError("Database is not initialized")

        pool = self._pool
        conn = await pool.get()
        try:
            yield conn
        except aiosqlite.Error as exc:
            await self._rollback(conn)
            raise StorageError(str(exc)) from exc
        except BaseException:
            # Cancellation can land between a write and its commit; the
            # connection must go back to the pool outside any transaction.
            await self._rollback(conn)
            raise
        finally:
            if self._pool is pool:
                pool.put_nowait(conn)

    async def health_check(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            async with self.get_connection() as conn:
                await conn.execute("SELECT 1")
            return True
        except StorageError as exc:
            logger.error("Database health check failed", error=str(exc))
            return False

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.rollback()
        except (aiosqlite.Error, ValueError) as exc:
            logger.warning("Rollback failed", error=str(exc))

    async def _open_connection(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.database_path, timeout=30)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode = WAL")
        await conn.execute("PRAGMA busy_timeout = 30000")
        return conn

    async def _run_migrations(self, conn: aiosqlite.Connection) -> None:
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)"
        )
        cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        current = row[0] or 0

        for version, script in MIGRATIONS:
            if version <= current:
                continue
            await conn.executescript(script)
            await conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            await conn.commit()
            logger.info("Applied database migration", version=version)

    async def _close_connections(self) -> None:
        while self._connections:
            conn = self._connections.pop()
            try:
                await conn.close()
            except aiosqlite.Error as exc:
                logger.warning("Error closing connection", error=str(exc))
