"""Shared test fixtures for SignDesk."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from signdesk.models.preset import PresetRequest
from signdesk.repositories.history_repository import HistoryRepository
from signdesk.repositories.preset_repository import PresetRepository
from signdesk.services.database import Database

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> str:
    """Provide a temporary database file path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def db(tmp_db_path: str) -> Iterator[Database]:
    """Provide an initialized temporary database."""
    database = Database(db_path=tmp_db_path)
    database.init_db()
    yield database
    database.close()


@pytest.fixture
def preset_repo(db: Database) -> PresetRepository:
    return PresetRepository(db)


@pytest.fixture
def history_repo(db: Database) -> HistoryRepository:
    return HistoryRepository(db)


@pytest.fixture
def sample_request() -> PresetRequest:
    """A complete request as it would be saved in a preset."""
    return PresetRequest(
        url="https://api.example.com/webapi",
        appkey="acme-key",
        password="s3cret",
        ver="1",
        timestamp="20240115120000",
        data_raw='{"orderNo": "SO-1001"}',
        data_b64=None,
    )


@pytest.fixture
def sample_form_values() -> dict[str, Any]:
    """Valid send-form input."""
    return {
        "url": "https://api.example.com/webapi",
        "appkey": "acme-key",
        "password": "s3cret",
        "ver": "1",
        "timestamp": "20240115120000",
        "data_raw": '{"orderNo": "SO-1001"}',
        "data_b64": "",
        "timeout_ms": 30000,
    }
