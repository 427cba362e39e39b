"""Pydantic data models for SignDesk."""

from signdesk.models.config import Config
from signdesk.models.history import (
    HISTORY_LIMIT,
    HistoryItem,
    RequestSummary,
    StorageHistory,
)
from signdesk.models.preset import GroupItem, PresetItem, PresetRequest, StorageGroups
from signdesk.models.request import (
    DEFAULT_TIMEOUT_MS,
    RequestExecution,
    RequestResult,
    SendForm,
)

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "HISTORY_LIMIT",
    "Config",
    "GroupItem",
    "HistoryItem",
    "PresetItem",
    "PresetRequest",
    "RequestExecution",
    "RequestResult",
    "RequestSummary",
    "SendForm",
    "StorageGroups",
    "StorageHistory",
]
