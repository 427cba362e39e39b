"""SQLite database service."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Generator

logger = structlog.get_logger(__name__)


class Database:
    """SQLite database service with schema management."""

    def __init__(self, db_path: str = "data/signdesk.db") -> None:
        self.db_path = db_path
        self._ensure_directory()
        self._connection: sqlite3.Connection | None = None

    def _ensure_directory(self) -> None:
        """Ensure the parent directory of the database file exists."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(self.db_path)
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.execute("PRAGMA foreign_keys=ON")
        return self._connection

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database transactions."""
        conn = self.connection
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def execute(self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> sqlite3.Cursor:
        """Execute a single SQL statement."""
        return self.connection.execute(sql, params)

    def fetchone(
        self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()
    ) -> sqlite3.Row | None:
        """Execute and fetch one row."""
        cursor = self.execute(sql, params)
        return cursor.fetchone()

    def fetchall(
        self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()
    ) -> list[sqlite3.Row]:
        """Execute and fetch all rows."""
        cursor = self.execute(sql, params)
        return cursor.fetchall()

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def init_db(self) -> None:
        """Initialize database schema. Creates all tables and indexes."""
        logger.info("initializing_database", path=self.db_path)

        with self.transaction() as cursor:
            # preset groups, ordered by insertion (rowid)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS preset_groups (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            # presets table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS presets (
                    id TEXT PRIMARY KEY,
                    group_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    url TEXT NOT NULL DEFAULT '',
                    appkey TEXT NOT NULL DEFAULT '',
                    password TEXT NOT NULL DEFAULT '',
                    ver TEXT NOT NULL DEFAULT '1',
                    timestamp TEXT,
                    data_raw TEXT NOT NULL DEFAULT '',
                    data_b64 TEXT,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (group_id) REFERENCES preset_groups(id) ON DELETE CASCADE
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_presets_group_id ON presets(group_id)")

            # key/value state (last used group and preset)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS app_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            # request history
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS history (
                    id TEXT PRIMARY KEY,
                    ts TEXT NOT NULL,
                    duration_ms INTEGER NOT NULL DEFAULT 0,
                    status INTEGER,
                    ok INTEGER NOT NULL DEFAULT 0,
                    url TEXT NOT NULL,
                    appkey TEXT NOT NULL,
                    ver TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    sign TEXT NOT NULL,
                    data_b64_len INTEGER NOT NULL DEFAULT 0,
                    request_json TEXT,
                    response_text TEXT NOT NULL DEFAULT '',
                    error_message TEXT
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_history_ts ON history(ts)")

        logger.info("database_initialized", path=self.db_path)
