"""Request history repository with bounded retention."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from signdesk.models.history import HISTORY_LIMIT, HistoryItem, RequestSummary, StorageHistory
from signdesk.models.preset import PresetRequest

if TYPE_CHECKING:
    from signdesk.services.database import Database

logger = structlog.get_logger(__name__)

LIMIT_KEY = "history_limit"


def _row_to_item(row: sqlite3.Row) -> HistoryItem:
    """Build a HistoryItem from a history row."""
    request = None
    if row["request_json"]:
        request = PresetRequest.model_validate_json(row["request_json"])
    return HistoryItem(
        id=row["id"],
        ts=datetime.fromisoformat(row["ts"]),
        duration_ms=row["duration_ms"],
        status=row["status"],
        ok=bool(row["ok"]),
        request_summary=RequestSummary(
            url=row["url"],
            appkey=row["appkey"],
            ver=row["ver"],
            timestamp=row["timestamp"],
            sign=row["sign"],
            data_b64_len=row["data_b64_len"],
        ),
        request=request,
        response_text=row["response_text"],
        error_message=row["error_message"],
    )


class HistoryRepository:
    """Repository for recorded request executions, newest first."""

    def __init__(self, db: Database) -> None:
        self.db = db

    @staticmethod
    def _insert(cursor: sqlite3.Cursor, entry: HistoryItem) -> None:
        summary = entry.request_summary
        cursor.execute(
            """INSERT OR REPLACE INTO history
               (id, ts, duration_ms, status, ok, url, appkey, ver, timestamp,
                sign, data_b64_len, request_json, response_text, error_message)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry.id,
                entry.ts.isoformat(),
                entry.duration_ms,
                entry.status,
                1 if entry.ok else 0,
                summary.url,
                summary.appkey,
                summary.ver,
                summary.timestamp,
                summary.sign,
                summary.data_b64_len,
                entry.request.model_dump_json() if entry.request else None,
                entry.response_text,
                entry.error_message,
            ),
        )

    @staticmethod
    def _trim(cursor: sqlite3.Cursor, limit: int) -> int:
        cursor.execute(
            """DELETE FROM history WHERE id NOT IN (
                   SELECT id FROM history ORDER BY rowid DESC LIMIT ?
               )""",
            (limit,),
        )
        return cursor.rowcount

    def push(self, entry: HistoryItem, limit: int = HISTORY_LIMIT) -> HistoryItem:
        """Record an entry as the newest and keep only the newest `limit` entries."""
        with self.db.transaction() as cursor:
            self._insert(cursor, entry)
            trimmed = self._trim(cursor, limit)
        if trimmed:
            logger.info("history_trimmed", removed=trimmed, limit=limit)
        logger.debug("history_recorded", history_id=entry.id, ok=entry.ok, status=entry.status)
        return entry

    def list_items(self, limit: int | None = None) -> list[HistoryItem]:
        """List entries, newest first."""
        sql = "SELECT * FROM history ORDER BY rowid DESC"
        if limit is not None:
            rows = self.db.fetchall(sql + " LIMIT ?", (limit,))
        else:
            rows = self.db.fetchall(sql)
        return [_row_to_item(row) for row in rows]

    def get(self, item_id: str) -> HistoryItem | None:
        """Get a history entry by ID."""
        row = self.db.fetchone("SELECT * FROM history WHERE id = ?", (item_id,))
        return _row_to_item(row) if row else None

    def count(self) -> int:
        """Count stored entries."""
        row = self.db.fetchone("SELECT COUNT(*) AS cnt FROM history")
        return row["cnt"] if row else 0

    def clear(self) -> int:
        """Delete every entry. Returns the number removed."""
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM history")
            removed = cursor.rowcount
        logger.info("history_cleared", removed=removed)
        return removed

    def stored_limit(self) -> int | None:
        """Retention limit carried over from an imported history, if any."""
        row = self.db.fetchone("SELECT value FROM app_state WHERE key = ?", (LIMIT_KEY,))
        return int(row["value"]) if row else None

    def effective_limit(self, default: int = HISTORY_LIMIT) -> int:
        """The imported retention limit when one was stored, else default."""
        stored = self.stored_limit()
        return stored if stored is not None else default

    def load(self, limit: int | None = None) -> StorageHistory:
        """Load all entries with the retention limit they are kept under."""
        if limit is None:
            limit = self.effective_limit()
        return StorageHistory(items=self.list_items(), limit=limit)

    def replace_all(self, data: StorageHistory) -> None:
        """Replace every entry with the given history and keep its limit for later pushes."""
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM history")
            for entry in reversed(data.items[: data.limit]):
                self._insert(cursor, entry)
            cursor.execute(
                """INSERT INTO app_state (key, value) VALUES (?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
                (LIMIT_KEY, str(data.limit)),
            )
        logger.info(
            "history_replaced", items=min(len(data.items), data.limit), limit=data.limit
        )
