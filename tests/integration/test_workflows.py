"""Integration tests for end-to-end CLI workflows.

Drive the click commands with CliRunner against a real temporary database.
Only the HTTP transport (requests.Session.post) is replaced.
"""

from __future__ import annotations

import base64
import hashlib
import json
import re
from typing import TYPE_CHECKING, Any

import pytest
import requests
from click.testing import CliRunner

from signdesk.cli import cli

if TYPE_CHECKING:
    from pathlib import Path

ID_PATTERN = re.compile(r"\[([0-9a-f-]{36})\]")


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int, text: str) -> None:
        self.status_code = status_code
        self.text = text


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """CliRunner with an isolated working directory and database."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    monkeypatch.setenv("MAX_RETRY_ATTEMPTS", "1")
    return CliRunner()


@pytest.fixture
def fake_post(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Replace Session.post; returns the list of recorded calls."""
    calls: list[dict[str, Any]] = []
    body = base64.b64encode(json.dumps({"code": 0, "msg": "ok"}).encode()).decode()

    def _post(self: requests.Session, url: str, **kwargs: Any) -> FakeResponse:
        calls.append({"url": url, **kwargs})
        return FakeResponse(200, body)

    monkeypatch.setattr(requests.Session, "post", _post)
    return calls


def _invoke(runner: CliRunner, *args: str, input: str | None = None) -> Any:
    return runner.invoke(cli, list(args), input=input, catch_exceptions=False)


def _ids(output: str) -> list[str]:
    return ID_PATTERN.findall(output)


SEND_ARGS = [
    "--url",
    "https://api.example.com/webapi",
    "--appkey",
    "acme-key",
    "--password",
    "s3cret",
    "--timestamp",
    "20240115120000",
    "--data-raw",
    '{"orderNo": "SO-1001"}',
]


class TestDigestCommands:
    def test_md5_upper_hex_empty(self, runner: CliRunner) -> None:
        result = _invoke(runner, "md5-upper-hex", "")
        assert result.exit_code == 0
        assert result.output.strip() == "D41D8CD98F00B204E9800998ECF8427E"

    def test_md5_upper_hex_abc(self, runner: CliRunner) -> None:
        result = _invoke(runner, "md5-upper-hex", "abc")
        assert result.output.strip() == "900150983CD24FB0D6963F7D28E17F72"

    def test_sign_from_raw(self, runner: CliRunner) -> None:
        result = _invoke(
            runner,
            "sign",
            "--timestamp",
            "20240115120000",
            "--data-raw",
            '{"a":1}',
            "--password",
            "pw",
        )
        expected = hashlib.md5(b"20240115120000eyJhIjoxfQ==pw").hexdigest().upper()
        assert result.exit_code == 0
        assert "eyJhIjoxfQ==" in result.output
        assert f"sign:      {expected}" in result.output

    def test_sign_requires_data(self, runner: CliRunner) -> None:
        result = _invoke(runner, "sign", "--password", "pw")
        assert result.exit_code == 1
        assert "--data-b64 or --data-raw" in result.output

    def test_encode_and_decode(self, runner: CliRunner) -> None:
        encoded = _invoke(runner, "encode", '{"a":1}')
        assert encoded.output.strip() == "eyJhIjoxfQ=="
        decoded = _invoke(runner, "decode", "eyJhIjoxfQ==")
        assert decoded.output.strip() == '{"a":1}'

    def test_encode_rejects_non_json(self, runner: CliRunner) -> None:
        result = _invoke(runner, "encode", "not json")
        assert result.exit_code == 1
        assert _invoke(runner, "encode", "--no-check-json", "hi").output.strip() == "aGk="

    def test_decode_invalid(self, runner: CliRunner) -> None:
        result = _invoke(runner, "decode", "{{{")
        assert result.exit_code == 1
        assert "base64 decode failed" in result.output

    def test_timestamp(self, runner: CliRunner) -> None:
        result = _invoke(runner, "timestamp")
        assert re.fullmatch(r"\d{14}", result.output.strip())


class TestPresetWorkflow:
    def test_group_and_preset_lifecycle(self, runner: CliRunner) -> None:
        created = _invoke(runner, "group-create", "WMS")
        assert created.exit_code == 0
        group_id = _ids(created.output)[0]

        saved = _invoke(runner, "preset-save", "WMS", "Query orders", *SEND_ARGS)
        assert saved.exit_code == 0
        preset_id = _ids(saved.output)[0]

        listing = _invoke(runner, "groups")
        assert f"* WMS  [{group_id}]  (1 presets)" in listing.output
        assert f"* Query orders  [{preset_id}]" in listing.output

        shown = _invoke(runner, "preset-show", preset_id)
        assert "s****t" in shown.output
        assert "s3cret" not in shown.output
        shown_plain = _invoke(runner, "preset-show", preset_id, "--show-password", "--json")
        assert json.loads(shown_plain.output)["request"]["password"] == "s3cret"

        cloned = _invoke(runner, "preset-clone", preset_id)
        assert "Query orders Copy" in cloned.output
        clone_id = _ids(cloned.output)[0]

        deleted = _invoke(runner, "preset-delete", clone_id)
        assert deleted.exit_code == 0
        assert "Copy" not in _invoke(runner, "groups").output

        renamed = _invoke(runner, "group-rename", group_id, "Warehouse")
        assert "Renamed group to Warehouse" in renamed.output

        removed = _invoke(runner, "group-delete", "Warehouse", "--yes")
        assert removed.exit_code == 0
        assert "No groups yet" in _invoke(runner, "groups").output

    def test_group_delete_asks_for_confirmation(self, runner: CliRunner) -> None:
        _invoke(runner, "group-create", "Keep")
        result = _invoke(runner, "group-delete", "Keep", input="n\n")
        assert result.exit_code == 1
        assert "Keep" in _invoke(runner, "groups").output

    def test_unknown_group(self, runner: CliRunner) -> None:
        result = _invoke(runner, "group-rename", "missing", "x")
        assert result.exit_code == 1
        assert "Unknown group: missing" in result.output

    def test_preset_sample(self, runner: CliRunner) -> None:
        result = _invoke(runner, "preset-sample")
        assert result.exit_code == 0
        assert "Sample Preset" in result.output
        assert "Default" in _invoke(runner, "groups").output


class TestSendWorkflow:
    def test_send_inline(self, runner: CliRunner, fake_post: list[dict[str, Any]]) -> None:
        result = _invoke(runner, "send", *SEND_ARGS)
        assert result.exit_code == 0
        assert "[SUCCESS] HTTP 200" in result.output
        assert '"msg": "ok"' in result.output

        assert len(fake_post) == 1
        fields = fake_post[0]["files"]
        data_b64 = base64.b64encode(b'{"orderNo": "SO-1001"}').decode()
        assert fields["data"] == (None, data_b64)
        expected_sign = hashlib.md5(f"20240115120000{data_b64}s3cret".encode()).hexdigest()
        assert fields["sign"] == (None, expected_sign.upper())
        assert fake_post[0]["timeout"] == 30.0

        history = _invoke(runner, "history")
        assert "History (1 of 1)" in history.output
        assert "OK  200" in history.output

    def test_send_json_output(self, runner: CliRunner, fake_post: list[dict[str, Any]]) -> None:
        result = _invoke(runner, "send", *SEND_ARGS, "--output-format", "json")
        payload = json.loads(result.output)
        assert payload["execution"]["status"] == 200
        assert payload["execution"]["timestamp"] == "20240115120000"
        assert json.loads(payload["result"]["json"]) == {"code": 0, "msg": "ok"}

        shown = _invoke(runner, "history-show", payload["historyId"])
        assert shown.exit_code == 0
        assert payload["execution"]["sign"] in shown.output

    def test_send_from_preset_with_override(
        self, runner: CliRunner, fake_post: list[dict[str, Any]]
    ) -> None:
        _invoke(runner, "group-create", "G")
        saved = _invoke(runner, "preset-save", "G", "P", *SEND_ARGS)
        preset_id = _ids(saved.output)[0]

        result = _invoke(runner, "send", "--preset", preset_id, "--appkey", "other-key")
        assert result.exit_code == 0
        fields = fake_post[0]["files"]
        assert fields["appkey"] == (None, "other-key")
        assert fields["timestamp"] == (None, "20240115120000")

    def test_send_refresh_timestamp(
        self, runner: CliRunner, fake_post: list[dict[str, Any]]
    ) -> None:
        _invoke(runner, "send", *SEND_ARGS, "--refresh-timestamp", "--timeout-ms", "5000")
        assert fake_post[0]["files"]["timestamp"] != (None, "20240115120000")
        assert fake_post[0]["timeout"] == 5.0

    def test_send_non_2xx(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            requests.Session, "post", lambda self, url, **kwargs: FakeResponse(500, "boom")
        )
        result = _invoke(runner, "send", *SEND_ARGS)
        assert result.exit_code == 0
        assert "[WARNING] non-2xx HTTP 500" in result.output
        assert "HTTP non-2xx" in _invoke(runner, "history").output

    def test_send_transport_failure(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _refuse(self: requests.Session, url: str, **kwargs: Any) -> FakeResponse:
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(requests.Session, "post", _refuse)
        result = _invoke(runner, "send", *SEND_ARGS)
        assert result.exit_code == 1
        assert "Request failed: connection refused" in result.output

        history = _invoke(runner, "history")
        assert "ERR ---" in history.output
        assert "connection refused" in history.output

    def test_send_invalid_input(self, runner: CliRunner, fake_post: list[dict[str, Any]]) -> None:
        args = [*SEND_ARGS]
        args[args.index("https://api.example.com/webapi")] = "not-a-url"
        result = _invoke(runner, "send", *args)
        assert result.exit_code == 1
        assert "Validation failed" in result.output
        assert "url" in result.output
        assert fake_post == []

    def test_history_clear(self, runner: CliRunner, fake_post: list[dict[str, Any]]) -> None:
        _invoke(runner, "send", *SEND_ARGS)
        cleared = _invoke(runner, "history-clear", "--yes")
        assert "Cleared 1 history entries" in cleared.output
        assert "No history." in _invoke(runner, "history").output


class TestBackupWorkflow:
    def test_export_and_import(
        self, runner: CliRunner, fake_post: list[dict[str, Any]], tmp_path: Path
    ) -> None:
        _invoke(runner, "group-create", "G")
        _invoke(runner, "preset-save", "G", "P", *SEND_ARGS)
        _invoke(runner, "send", *SEND_ARGS)

        backup = tmp_path / "backup.json"
        exported = _invoke(runner, "export", "--output", str(backup))
        assert exported.exit_code == 0
        payload = json.loads(backup.read_text(encoding="utf-8"))
        assert len(payload["history"]["items"]) == 1

        _invoke(runner, "group-delete", "G", "--yes")
        _invoke(runner, "history-clear", "--yes")

        imported = _invoke(runner, "import", str(backup), "--yes")
        assert imported.exit_code == 0
        assert "Imported 1 groups and 1 history entries" in imported.output
        assert "P  [" in _invoke(runner, "groups").output
        assert "History (1 of 1)" in _invoke(runner, "history").output

    def test_export_to_stdout(self, runner: CliRunner) -> None:
        result = _invoke(runner, "export", "--output", "-")
        assert json.loads(result.output) == {
            "groups": {"groups": [], "lastUsedGroupId": None, "lastUsedPresetId": None},
            "history": {"items": [], "limit": 500},
        }

    def test_import_rejects_bad_payload(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text('{"groups": {}}', encoding="utf-8")
        result = _invoke(runner, "import", str(bad), "--yes")
        assert result.exit_code == 1
        assert "must contain 'groups' and 'history'" in result.output

    def test_import_rejects_invalid_json(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        result = _invoke(runner, "import", str(bad), "--yes")
        assert result.exit_code == 1
        assert "is not valid JSON" in result.output

    def test_export_to_missing_directory(self, runner: CliRunner, tmp_path: Path) -> None:
        target = tmp_path / "missing" / "backup.json"
        result = _invoke(runner, "export", "--output", str(target))
        assert result.exit_code == 1
        assert "Error: Cannot write" in result.output
        assert not target.exists()


class TestErrorReporting:
    @pytest.mark.parametrize(
        "args",
        [
            ["groups"],
            ["preset-sample"],
            ["history"],
            ["history-clear", "--yes"],
            ["export", "--output", "-"],
        ],
    )
    def test_bad_config_is_reported(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, args: list[str]
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        result = _invoke(runner, *args)
        assert result.exit_code == 1
        assert "Error: Validation failed" in result.output
        assert "log_level" in result.output
