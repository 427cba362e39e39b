"""Group and preset repository for database CRUD operations."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from signdesk.models.preset import GroupItem, PresetItem, PresetRequest, StorageGroups
from signdesk.utils.helpers import generate_id

if TYPE_CHECKING:
    from signdesk.services.database import Database

logger = structlog.get_logger(__name__)

LAST_GROUP_KEY = "last_used_group_id"
LAST_PRESET_KEY = "last_used_preset_id"
SAMPLE_PRESET_NAME = "Sample Preset"


def _now() -> datetime:
    return datetime.now(UTC)


def _row_to_preset(row: sqlite3.Row) -> PresetItem:
    """Build a PresetItem from a presets row."""
    return PresetItem(
        id=row["id"],
        name=row["name"],
        request=PresetRequest(
            url=row["url"],
            appkey=row["appkey"],
            password=row["password"],
            ver=row["ver"],
            timestamp=row["timestamp"],
            data_raw=row["data_raw"],
            data_b64=row["data_b64"],
        ),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class PresetRepository:
    """Repository for preset groups, presets and the last-used selection."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # --- state ---

    def _get_state(self, key: str) -> str | None:
        row = self.db.fetchone("SELECT value FROM app_state WHERE key = ?", (key,))
        return row["value"] if row else None

    @staticmethod
    def _set_state(cursor: sqlite3.Cursor, key: str, value: str | None) -> None:
        if value is None:
            cursor.execute("DELETE FROM app_state WHERE key = ?", (key,))
        else:
            cursor.execute(
                """INSERT INTO app_state (key, value) VALUES (?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
                (key, value),
            )

    @staticmethod
    def _touch_group(cursor: sqlite3.Cursor, group_id: str) -> None:
        cursor.execute(
            "UPDATE preset_groups SET updated_at = ? WHERE id = ?",
            (_now().isoformat(), group_id),
        )

    @staticmethod
    def _write_preset(cursor: sqlite3.Cursor, group_id: str, preset: PresetItem) -> None:
        request = preset.request
        cursor.execute(
            """INSERT INTO presets
               (id, group_id, name, url, appkey, password, ver, timestamp,
                data_raw, data_b64, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                 group_id = excluded.group_id,
                 name = excluded.name,
                 url = excluded.url,
                 appkey = excluded.appkey,
                 password = excluded.password,
                 ver = excluded.ver,
                 timestamp = excluded.timestamp,
                 data_raw = excluded.data_raw,
                 data_b64 = excluded.data_b64,
                 updated_at = excluded.updated_at""",
            (
                preset.id,
                group_id,
                preset.name,
                request.url,
                request.appkey,
                request.password,
                request.ver,
                request.timestamp,
                request.data_raw,
                request.data_b64,
                preset.updated_at.isoformat(),
            ),
        )

    def _require_group(self, group_id: str) -> dict[str, Any]:
        row = self.db.fetchone("SELECT * FROM preset_groups WHERE id = ?", (group_id,))
        if row is None:
            msg = f"Unknown group: {group_id}"
            raise ValueError(msg)
        return dict(row)

    # --- queries ---

    def load_groups(self) -> StorageGroups:
        """Load all groups with their presets, in insertion order."""
        group_rows = self.db.fetchall("SELECT * FROM preset_groups ORDER BY rowid")
        preset_rows = self.db.fetchall("SELECT * FROM presets ORDER BY rowid")

        presets_by_group: dict[str, list[PresetItem]] = {}
        for row in preset_rows:
            presets_by_group.setdefault(row["group_id"], []).append(_row_to_preset(row))

        groups = [
            GroupItem(
                id=row["id"],
                name=row["name"],
                presets=presets_by_group.get(row["id"], []),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
            for row in group_rows
        ]
        return StorageGroups(
            groups=groups,
            last_used_group_id=self._get_state(LAST_GROUP_KEY),
            last_used_preset_id=self._get_state(LAST_PRESET_KEY),
        )

    def resolve_group(self, ref: str) -> GroupItem:
        """Find a group by ID, falling back to an exact name match."""
        groups = self.load_groups().groups
        for group in groups:
            if group.id == ref:
                return group
        matches = [group for group in groups if group.name == ref]
        if not matches:
            msg = f"Unknown group: {ref}"
            raise ValueError(msg)
        if len(matches) > 1:
            msg = f"Group name is ambiguous, use the ID: {ref}"
            raise ValueError(msg)
        return matches[0]

    def get_preset(self, preset_id: str) -> tuple[str, PresetItem] | None:
        """Get a preset by ID. Returns (group_id, preset)."""
        row = self.db.fetchone("SELECT * FROM presets WHERE id = ?", (preset_id,))
        if row is None:
            return None
        return row["group_id"], _row_to_preset(row)

    # --- groups ---

    def create_group(self, name: str) -> GroupItem:
        """Create an empty group and select it."""
        group = GroupItem(name=name)
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO preset_groups (id, name, updated_at) VALUES (?, ?, ?)",
                (group.id, group.name, group.updated_at.isoformat()),
            )
            self._set_state(cursor, LAST_GROUP_KEY, group.id)
            self._set_state(cursor, LAST_PRESET_KEY, None)
        logger.info("group_created", group_id=group.id, name=group.name)
        return group

    def rename_group(self, group_id: str, name: str) -> GroupItem:
        """Rename a group."""
        self._require_group(group_id)
        validated = GroupItem(id=group_id, name=name)
        with self.db.transaction() as cursor:
            cursor.execute(
                "UPDATE preset_groups SET name = ?, updated_at = ? WHERE id = ?",
                (validated.name, validated.updated_at.isoformat(), group_id),
            )
        logger.info("group_renamed", group_id=group_id, name=validated.name)
        return self.resolve_group(group_id)

    def delete_group(self, group_id: str) -> None:
        """Delete a group and its presets, clearing any selection that pointed into it."""
        self._require_group(group_id)
        preset_ids = {
            row["id"]
            for row in self.db.fetchall("SELECT id FROM presets WHERE group_id = ?", (group_id,))
        }
        last_group = self._get_state(LAST_GROUP_KEY)
        last_preset = self._get_state(LAST_PRESET_KEY)

        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM preset_groups WHERE id = ?", (group_id,))
            if last_group == group_id:
                self._set_state(cursor, LAST_GROUP_KEY, None)
            if last_preset in preset_ids:
                self._set_state(cursor, LAST_PRESET_KEY, None)
        logger.info("group_deleted", group_id=group_id, presets_removed=len(preset_ids))

    # --- presets ---

    def upsert_preset(self, group_id: str, preset: PresetItem) -> PresetItem:
        """Insert or replace a preset in a group and select it."""
        self._require_group(group_id)
        with self.db.transaction() as cursor:
            self._write_preset(cursor, group_id, preset)
            self._touch_group(cursor, group_id)
            self._set_state(cursor, LAST_GROUP_KEY, group_id)
            self._set_state(cursor, LAST_PRESET_KEY, preset.id)
        logger.info("preset_saved", group_id=group_id, preset_id=preset.id, name=preset.name)
        return preset

    def delete_preset(self, group_id: str, preset_id: str) -> None:
        """Delete a preset from a group."""
        self._require_group(group_id)
        with self.db.transaction() as cursor:
            cursor.execute(
                "DELETE FROM presets WHERE id = ? AND group_id = ?",
                (preset_id, group_id),
            )
            if cursor.rowcount == 0:
                msg = f"Unknown preset in group {group_id}: {preset_id}"
                raise ValueError(msg)
            self._touch_group(cursor, group_id)
            if self._get_state(LAST_PRESET_KEY) == preset_id:
                self._set_state(cursor, LAST_PRESET_KEY, None)
        logger.info("preset_deleted", group_id=group_id, preset_id=preset_id)

    def clone_preset(self, group_id: str, preset_id: str) -> PresetItem:
        """Copy a preset into the same group under '<name> Copy'."""
        self._require_group(group_id)
        found = self.get_preset(preset_id)
        if found is None or found[0] != group_id:
            msg = f"Unknown preset in group {group_id}: {preset_id}"
            raise ValueError(msg)
        original = found[1]
        clone = PresetItem(
            id=generate_id(),
            name=f"{original.name} Copy",
            request=original.request.model_copy(),
        )
        with self.db.transaction() as cursor:
            self._write_preset(cursor, group_id, clone)
            self._touch_group(cursor, group_id)
        logger.info("preset_cloned", group_id=group_id, source_id=preset_id, preset_id=clone.id)
        return clone

    def ensure_group_with_preset(self, group_name: str, request: PresetRequest) -> PresetItem:
        """Add a sample preset to the first group, creating a group if none exist."""
        groups = self.load_groups().groups
        group_id = groups[0].id if groups else self.create_group(group_name).id
        preset = PresetItem(name=SAMPLE_PRESET_NAME, request=request)
        return self.upsert_preset(group_id, preset)

    # --- bulk ---

    def replace_all(self, data: StorageGroups) -> None:
        """Replace every group, preset and the selection with the given data."""
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM presets")
            cursor.execute("DELETE FROM preset_groups")
            for group in data.groups:
                cursor.execute(
                    "INSERT INTO preset_groups (id, name, updated_at) VALUES (?, ?, ?)",
                    (group.id, group.name, group.updated_at.isoformat()),
                )
                for preset in group.presets:
                    self._write_preset(cursor, group.id, preset)
            self._set_state(cursor, LAST_GROUP_KEY, data.last_used_group_id)
            self._set_state(cursor, LAST_PRESET_KEY, data.last_used_preset_id)
        logger.info("groups_replaced", groups=len(data.groups))
