"""Export and import of all groups, presets and history as JSON."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from signdesk.core.timestamps import get_timestamp
from signdesk.models.history import StorageHistory
from signdesk.models.preset import StorageGroups

if TYPE_CHECKING:
    from datetime import datetime

    from signdesk.repositories.history_repository import HistoryRepository
    from signdesk.repositories.preset_repository import PresetRepository

logger = structlog.get_logger(__name__)


def backup_filename(now: datetime | None = None) -> str:
    """Default file name for an export."""
    return f"signdesk-backup-{get_timestamp(now)}.json"


def export_all(
    preset_repo: PresetRepository,
    history_repo: HistoryRepository,
    history_limit: int | None = None,
) -> dict[str, Any]:
    """Dump groups and history in their camelCase JSON form.

    An imported history limit takes precedence over history_limit.
    """
    groups = preset_repo.load_groups()
    if history_limit is not None:
        history_limit = history_repo.effective_limit(history_limit)
    history = history_repo.load(history_limit)
    logger.info("data_exported", groups=len(groups.groups), history=len(history.items))
    return {
        "groups": groups.model_dump(mode="json", by_alias=True),
        "history": history.model_dump(mode="json", by_alias=True),
    }


def import_all(
    data: Any,
    preset_repo: PresetRepository,
    history_repo: HistoryRepository,
) -> tuple[StorageGroups, StorageHistory] | None:
    """Replace stored groups and history with an exported payload.

    Returns None when the payload is not an object holding both "groups"
    and "history". Malformed nested data raises pydantic.ValidationError
    before anything is written.
    """
    if not isinstance(data, dict):
        return None
    if data.get("groups") is None or data.get("history") is None:
        return None

    groups = StorageGroups.model_validate(data["groups"])
    history = StorageHistory.model_validate(data["history"])

    preset_repo.replace_all(groups)
    history_repo.replace_all(history)
    logger.info("data_imported", groups=len(groups.groups), history=len(history.items))
    return groups, history
