import aiosqlite
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Optional
import logging

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: datetime) -> str:
    """Fixed-width ISO timestamp so string comparison orders correctly."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def cutoff(*, days: float = 0, hours: float = 0) -> str:
    return to_db_time(utc_now() - timedelta(days=days, hours=hours))


class Database:
    """
    Shared SQLite store for the work queue, ledger and run records.

    Connections run in autocommit mode; multi-statement writes go through
    transaction(), which takes the database write lock up front so that
    concurrent bot processes serialize on it.
    """

    def __init__(self, path: str, busy_timeout: float = 30.0):
        self.path = path
        self.busy_timeout = busy_timeout

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await aiosqlite.connect(
            self.path,
            timeout=self.busy_timeout,
            isolation_level=None,
        )
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA foreign_keys=ON;")
        try:
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self.connect() as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            else:
                await conn.execute("COMMIT")

    async def execute(self, query: str, params: tuple = ()) -> int:
        """Run a single write statement and return the affected row count."""
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    async def fetchone(self, query: str, params: tuple = ()):
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()

    async def fetchall(self, query: str, params: tuple = ()):
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()

    async def init_tables(self) -> None:
        """Initialize the bot coordination tables."""
        async with self.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS work_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    item_type TEXT NOT NULL,
                    item_id TEXT NOT NULL,
                    action TEXT NOT NULL,
                    priority INTEGER NOT NULL DEFAULT 5,
                    status TEXT NOT NULL DEFAULT 'pending',
                    reason TEXT,
                    created_by TEXT NOT NULL,
                    assigned_to TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    started_at TEXT,
                    completed_at TEXT,
                    result TEXT
                )
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_work_queue_claim
                ON work_queue(assigned_to, status, priority, created_at)
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_work_queue_item
                ON work_queue(item_type, item_id, action)
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS bot_ledger (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    bot_name TEXT NOT NULL,
                    action TEXT NOT NULL,
                    item_type TEXT NOT NULL,
                    item_id TEXT NOT NULL,
                    before_state TEXT,
                    after_state TEXT,
                    reason TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_bot_ledger_item
                ON bot_ledger(item_id, bot_name, action, created_at)
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS bot_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    bot_name TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'running',
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    stats TEXT,
                    summary TEXT,
                    error TEXT
                )
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_bot_runs_bot
                ON bot_runs(bot_name, started_at)
            """)
            logger.info("Database tables initialized")
