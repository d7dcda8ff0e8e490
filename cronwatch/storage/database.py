"""SQLite job store.

Provides an async SQLite backend with:
- Schema management and version tracking
- Job records stored as JSON keyed by id (the table doubles as the job index)
- Bounded, newest-first history ledgers per job and globally
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Iterator

import aiosqlite

from ..core.errors import PersistenceError
from ..core.utils import get_logger, now_ms
from ..models import CronJob, ExecutionHistoryEntry, GlobalExecutionEntry
from .base import GLOBAL_HISTORY_LIMIT, HISTORY_LIMIT, JobStore

logger = get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("data/cronwatch.db")

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at INTEGER NOT NULL
);

-- Job records; the primary key is the job index
CREATE TABLE IF NOT EXISTS cron_jobs (
    id TEXT PRIMARY KEY,
    data TEXT NOT NULL,  -- JSON CronJob
    updated_at INTEGER NOT NULL
);

-- Per-job execution history, newest = highest seq
CREATE TABLE IF NOT EXISTS cron_history (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    data TEXT NOT NULL  -- JSON ExecutionHistoryEntry
);

-- Shared execution ledger
CREATE TABLE IF NOT EXISTS global_executions (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT,
    timestamp INTEGER NOT NULL,
    data TEXT NOT NULL  -- JSON GlobalExecutionEntry
);

CREATE INDEX IF NOT EXISTS idx_cron_history_job ON cron_history(job_id, seq);
"""


@asynccontextmanager
async def _translate_errors(operation: str) -> AsyncGenerator[None, None]:
    """Re-raise SQLite failures as PersistenceError."""
    try:
        yield
    except sqlite3.Error as e:
        logger.error("store_operation_failed", operation=operation, error=str(e))
        raise PersistenceError(f"{operation} failed: {e}") from e


class SQLiteJobStore(JobStore):
    """Async SQLite job store.

    Usage:
        store = SQLiteJobStore("data/cronwatch.db")
        await store.connect()

        await store.put(job.id, job)
        job = await store.get(job.id)

        await store.close()

    Or use as async context manager:
        async with SQLiteJobStore(path) as store:
            await store.put(job.id, job)
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        history_limit: int = HISTORY_LIMIT,
        global_history_limit: int = GLOBAL_HISTORY_LIMIT,
    ):
        """Initialize store.

        Args:
            db_path: Path to SQLite database file. Defaults to data/cronwatch.db
            history_limit: Entries kept per job history.
            global_history_limit: Entries kept in the shared ledger.
        """
        super().__init__(history_limit, global_history_limit)
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Connect to database and ensure schema exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with _translate_errors("connect"):
            self._connection = await aiosqlite.connect(
                self.db_path,
                isolation_level=None,  # Autocommit mode
            )
            self._connection.row_factory = aiosqlite.Row
            await self._apply_schema()

        logger.info("store_connected", path=str(self.db_path))

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("store_closed")

    async def __aenter__(self) -> "SQLiteJobStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def connection(self) -> aiosqlite.Connection:
        """Get active connection."""
        if not self._connection:
            raise PersistenceError("Store not connected. Call connect() first.")
        return self._connection

    async def _apply_schema(self) -> None:
        """Apply database schema and record its version."""
        try:
            async with self.connection.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            ) as cursor:
                row = await cursor.fetchone()
                current_version = row["version"] if row else 0
        except sqlite3.OperationalError:
            # schema_version table doesn't exist yet
            current_version = 0

        if current_version < SCHEMA_VERSION:
            logger.info(
                "applying_schema", version=SCHEMA_VERSION, current=current_version
            )
            await self.connection.executescript(SCHEMA)
            await self.connection.execute(
                "INSERT OR REPLACE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (SCHEMA_VERSION, now_ms()),
            )

    # =========================================================================
    # Job records
    # =========================================================================

    async def get(self, job_id: str) -> CronJob | None:
        async with _translate_errors("get"):
            async with self.connection.execute(
                "SELECT data FROM cron_jobs WHERE id = ?", (job_id,)
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        return CronJob.from_dict(json.loads(row["data"]))

    async def put(self, job_id: str, job: CronJob) -> None:
        async with _translate_errors("put"):
            await self.connection.execute(
                """
                INSERT INTO cron_jobs (id, data, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                (job_id, json.dumps(job.to_dict()), job.updated_at),
            )

    async def delete(self, job_id: str) -> None:
        async with _translate_errors("delete"):
            await self.connection.execute(
                "DELETE FROM cron_jobs WHERE id = ?", (job_id,)
            )

    async def list_ids(self) -> set[str]:
        async with _translate_errors("list_ids"):
            async with self.connection.execute("SELECT id FROM cron_jobs") as cursor:
                rows = await cursor.fetchall()
        return {row["id"] for row in rows}

    # =========================================================================
    # History ledgers
    # =========================================================================

    async def push_history(self, job_id: str, entry: ExecutionHistoryEntry) -> None:
        async with _translate_errors("push_history"):
            await self.connection.execute(
                "INSERT INTO cron_history (job_id, timestamp, data) VALUES (?, ?, ?)",
                (job_id, entry.timestamp, json.dumps(entry.to_dict())),
            )
            await self.connection.execute(
                """
                DELETE FROM cron_history
                WHERE job_id = ? AND seq NOT IN (
                    SELECT seq FROM cron_history
                    WHERE job_id = ?
                    ORDER BY seq DESC
                    LIMIT ?
                )
                """,
                (job_id, job_id, self.history_limit),
            )

    async def get_history(
        self, job_id: str, limit: int = 20
    ) -> list[ExecutionHistoryEntry]:
        async with _translate_errors("get_history"):
            async with self.connection.execute(
                "SELECT data FROM cron_history WHERE job_id = ? ORDER BY seq DESC LIMIT ?",
                (job_id, max(limit, 0)),
            ) as cursor:
                rows = await cursor.fetchall()
        return [ExecutionHistoryEntry.from_dict(d) for d in _decode(rows)]

    async def delete_history(self, job_id: str) -> None:
        async with _translate_errors("delete_history"):
            await self.connection.execute(
                "DELETE FROM cron_history WHERE job_id = ?", (job_id,)
            )

    async def push_global_execution(self, entry: GlobalExecutionEntry) -> None:
        async with _translate_errors("push_global_execution"):
            await self.connection.execute(
                "INSERT INTO global_executions (run_id, timestamp, data) VALUES (?, ?, ?)",
                (entry.run_id, entry.timestamp, json.dumps(entry.to_dict())),
            )
            await self.connection.execute(
                """
                DELETE FROM global_executions WHERE seq NOT IN (
                    SELECT seq FROM global_executions ORDER BY seq DESC LIMIT ?
                )
                """,
                (self.global_history_limit,),
            )

    async def get_global_executions(
        self, limit: int = 100
    ) -> list[GlobalExecutionEntry]:
        async with _translate_errors("get_global_executions"):
            async with self.connection.execute(
                "SELECT data FROM global_executions ORDER BY seq DESC LIMIT ?",
                (max(limit, 0),),
            ) as cursor:
                rows = await cursor.fetchall()
        return [GlobalExecutionEntry.from_dict(d) for d in _decode(rows)]

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_stats(self) -> dict:
        """Get row counts per table."""
        stats = {}
        for table in ("cron_jobs", "cron_history", "global_executions"):
            async with _translate_errors("get_stats"):
                async with self.connection.execute(
                    f"SELECT COUNT(*) as count FROM {table}"
                ) as cursor:
                    row = await cursor.fetchone()
            stats[table] = row["count"]
        return stats


def _decode(rows) -> Iterator[dict]:
    for row in rows:
        yield json.loads(row["data"])


@asynccontextmanager
async def store_session(
    db_path: Path | str | None = None,
    history_limit: int = HISTORY_LIMIT,
    global_history_limit: int = GLOBAL_HISTORY_LIMIT,
) -> AsyncGenerator[SQLiteJobStore, None]:
    """Async context manager for store sessions.

    Usage:
        async with store_session("data/cronwatch.db") as store:
            jobs = await store.list_jobs()
    """
    store = SQLiteJobStore(db_path, history_limit, global_history_limit)
    await store.connect()
    try:
        yield store
    finally:
        await store.close()
