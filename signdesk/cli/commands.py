"""CLI command implementations for SignDesk."""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

import click
from pydantic import ValidationError

from signdesk.core.digest import digest_upper_hex
from signdesk.core.encoding import decode_base64_to_utf8, encode_utf8_to_base64, is_valid_json
from signdesk.core.signing import compute_sign
from signdesk.core.timestamps import format_iso, get_timestamp
from signdesk.models.config import Config
from signdesk.models.preset import PresetItem, PresetRequest
from signdesk.services.database import Database
from signdesk.utils.helpers import format_bytes
from signdesk.utils.logger import configure_logging

if TYPE_CHECKING:
    from collections.abc import Callable

    from signdesk.models.history import HistoryItem

P = ParamSpec("P")
T = TypeVar("T")

SAMPLE_GROUP_NAME = "Default"
SAMPLE_REQUEST = PresetRequest(
    url="https://api.example.com/webapi",
    appkey="demo-appkey",
    password="demo-password",
    ver="1",
    data_raw='{"pageIndex": 1, "pageSize": 20}',
)


def _get_config() -> Config:
    """Load configuration from .env file."""
    return Config()


def _get_db(config: Config) -> Database:
    """Initialize database with schema."""
    db = Database(db_path=config.database_path)
    db.init_db()
    return db


def _setup() -> tuple[Config, Database]:
    config = _get_config()
    configure_logging(config.log_level)
    return config, _get_db(config)


def _handle_errors(func: Callable[P, T]) -> Callable[P, T]:
    """Report expected failures as a one-line error and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        from signdesk.services.request_runner import RequestFailedError

        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise click.ClickException(f"Validation failed: {details}") from e
        except RequestFailedError as e:
            raise click.ClickException(f"Request failed: {e}") from e
        except ValueError as e:
            raise click.ClickException(str(e)) from e

    return wrapper


def _mask(secret: str) -> str:
    if len(secret) <= 2:
        return "*" * len(secret)
    return f"{secret[0]}{'*' * (len(secret) - 2)}{secret[-1]}"


def _to_json(model: Any) -> str:
    return json.dumps(model.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)


def _print_request(request: PresetRequest, show_password: bool) -> None:
    password = request.password if show_password else _mask(request.password)
    click.echo(f"  url:       {request.url}")
    click.echo(f"  appkey:    {request.appkey}")
    click.echo(f"  password:  {password}")
    click.echo(f"  ver:       {request.ver}")
    click.echo(f"  timestamp: {request.timestamp or '-'}")
    click.echo(f"  data_raw:  {request.data_raw}")
    click.echo(f"  data_b64:  {request.data_b64 or '-'}")


def _print_history_line(item: HistoryItem) -> None:
    status = item.status if item.status is not None else "---"
    flag = "OK " if item.ok else "ERR"
    click.echo(
        f"  {flag} {status} {format_iso(item.ts.isoformat())} "
        f"{item.duration_ms}ms {item.request_summary.url}  [{item.id}]"
    )
    if item.error_message:
        click.echo(f"      {item.error_message}")


def _request_options(func: Callable[P, T]) -> Callable[P, T]:
    """Options shared by commands that take request fields."""
    options = [
        click.option("--url", default=None, help="Endpoint URL"),
        click.option("--appkey", default=None, help="Application key"),
        click.option("--password", default=None, help="AppPassword used in the sign"),
        click.option("--ver", default=None, help="API version (default 1)"),
        click.option("--timestamp", default=None, help="yyyyMMddHHmmss (default: now)"),
        click.option("--data-raw", default=None, help="Raw JSON data"),
        click.option("--data-b64", default=None, help="Pre-encoded base64 data"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _merge_request(base: PresetRequest | None, **overrides: str | None) -> PresetRequest:
    """Overlay explicitly given options on a base request."""
    data = base.model_dump() if base else PresetRequest().model_dump()
    for key, value in overrides.items():
        if value is not None:
            data[key] = value
    return PresetRequest.model_validate(data)


# --- Digest & signing ---


@click.command("md5-upper-hex")
@click.argument("text")
def md5_upper_hex(text: str) -> None:
    """Print the uppercase MD5 hex digest of TEXT."""
    click.echo(digest_upper_hex(text))


@click.command()
@click.option("--timestamp", default=None, help="yyyyMMddHHmmss (default: now)")
@click.option("--data-b64", default=None, help="Base64 data as sent")
@click.option("--data-raw", default=None, help="Raw JSON, encoded to base64 first")
@click.option("--password", required=True, help="AppPassword")
@_handle_errors
def sign(timestamp: str | None, data_b64: str | None, data_raw: str | None, password: str) -> None:
    """Compute sign = MD5(timestamp + data + password), uppercase."""
    if data_b64 is None and data_raw is None:
        raise ValueError("one of --data-b64 or --data-raw is required")
    if data_b64 is None:
        data_b64 = encode_utf8_to_base64(data_raw or "")
    ts = timestamp or get_timestamp()
    click.echo(f"timestamp: {ts}")
    click.echo(f"data:      {data_b64}")
    click.echo(f"sign:      {compute_sign(ts, data_b64, password)}")


@click.command()
@click.argument("text")
@click.option("--check-json/--no-check-json", default=True, help="Require TEXT to be valid JSON")
@_handle_errors
def encode(text: str, check_json: bool) -> None:
    """Base64-encode TEXT (UTF-8)."""
    if check_json and not is_valid_json(text):
        raise ValueError("TEXT is not valid JSON (use --no-check-json to skip)")
    encoded = encode_utf8_to_base64(text)
    click.echo(encoded)


@click.command()
@click.argument("text")
@_handle_errors
def decode(text: str) -> None:
    """Decode base64 TEXT into UTF-8."""
    result = decode_base64_to_utf8(text)
    if result.error is not None:
        raise ValueError(f"base64 decode failed: {result.error}")
    click.echo(result.data)


@click.command()
def timestamp() -> None:
    """Print the current request timestamp (yyyyMMddHHmmss)."""
    click.echo(get_timestamp())


# --- Sending ---


@click.command()
@_request_options
@click.option("--preset", "preset_id", default=None, help="Start from a saved preset")
@click.option("--refresh-timestamp", is_flag=True, help="Use the current time as timestamp")
@click.option("--timeout-ms", default=None, type=int, help="Request timeout in milliseconds")
@click.option("--no-convert", is_flag=True, help="Send --data-b64 as given, skip JSON encoding")
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "raw", "json"]),
    help="Output format",
)
@_handle_errors
def send(
    url: str | None,
    appkey: str | None,
    password: str | None,
    ver: str | None,
    timestamp: str | None,
    data_raw: str | None,
    data_b64: str | None,
    preset_id: str | None,
    refresh_timestamp: bool,
    timeout_ms: int | None,
    no_convert: bool,
    output_format: str,
) -> None:
    """Sign and send a multipart request, then record it in history."""
    config, db = _setup()

    from signdesk.repositories.history_repository import HistoryRepository
    from signdesk.repositories.preset_repository import PresetRepository
    from signdesk.services.request_client import SignedRequestClient
    from signdesk.services.request_runner import RequestRunner

    try:
        base = None
        if preset_id:
            found = PresetRepository(db).get_preset(preset_id)
            if found is None:
                raise ValueError(f"Unknown preset: {preset_id}")
            base = found[1].request

        request = _merge_request(
            base,
            url=url,
            appkey=appkey,
            password=password,
            ver=ver,
            timestamp=timestamp,
            data_raw=data_raw,
            data_b64=data_b64,
        )
        if refresh_timestamp or not request.timestamp:
            request.timestamp = get_timestamp()

        values = request.model_dump()
        values["data_b64"] = request.data_b64 or ""
        values["timeout_ms"] = timeout_ms or config.request_timeout_ms

        client = SignedRequestClient(max_attempts=config.max_retry_attempts)
        history_repo = HistoryRepository(db)
        runner = RequestRunner(
            client,
            history_repo,
            history_limit=history_repo.effective_limit(config.history_limit),
        )
        outcome = runner.send(values, convert_first=not no_convert)
    finally:
        db.close()

    execution = outcome.execution
    result = outcome.result
    if output_format == "json":
        click.echo(
            json.dumps(
                {
                    "execution": execution.model_dump(mode="json", by_alias=True),
                    "result": result.model_dump(mode="json", by_alias=True),
                    "historyId": outcome.history_item.id,
                },
                indent=2,
                ensure_ascii=False,
            )
        )
        return
    if output_format == "raw":
        click.echo(result.raw)
        return

    label = "[SUCCESS]" if execution.ok else "[WARNING] non-2xx"
    click.echo(f"\n{label} HTTP {execution.status} in {execution.duration_ms} ms")
    click.echo(f"  timestamp: {execution.timestamp}")
    click.echo(f"  sign:      {execution.sign}")
    click.echo(f"  size:      {format_bytes(len(result.raw.encode('utf-8')))}")
    if result.json_text is not None:
        click.echo(result.json_text)
    else:
        click.echo(result.raw)
        if result.json_error:
            click.echo(f"  (not JSON: {result.json_error})")


# --- Groups ---


@click.command("groups")
@_handle_errors
def list_groups() -> None:
    """List groups and their presets."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    try:
        data = PresetRepository(db).load_groups()
    finally:
        db.close()

    if not data.groups:
        click.echo("No groups yet. Create one with 'signdesk group-create NAME'.")
        return
    for group in data.groups:
        marker = "*" if group.id == data.last_used_group_id else " "
        click.echo(f"{marker} {group.name}  [{group.id}]  ({len(group.presets)} presets)")
        for preset in group.presets:
            p_marker = "*" if preset.id == data.last_used_preset_id else " "
            click.echo(f"    {p_marker} {preset.name}  [{preset.id}]  {preset.request.url}")


@click.command()
@click.argument("name")
@_handle_errors
def group_create(name: str) -> None:
    """Create a preset group."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    try:
        group = PresetRepository(db).create_group(name)
    finally:
        db.close()
    click.echo(f"[SUCCESS] Created group {group.name} [{group.id}]")


@click.command()
@click.argument("group_ref")
@click.argument("name")
@_handle_errors
def group_rename(group_ref: str, name: str) -> None:
    """Rename the group GROUP_REF (ID or name)."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    repo = PresetRepository(db)
    try:
        group = repo.rename_group(repo.resolve_group(group_ref).id, name)
    finally:
        db.close()
    click.echo(f"[SUCCESS] Renamed group to {group.name}")


@click.command()
@click.argument("group_ref")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@_handle_errors
def group_delete(group_ref: str, yes: bool) -> None:
    """Delete the group GROUP_REF (ID or name) and all its presets."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    repo = PresetRepository(db)
    try:
        group = repo.resolve_group(group_ref)
        if not yes:
            click.confirm(
                f"Delete group {group.name} with {len(group.presets)} presets?", abort=True
            )
        repo.delete_group(group.id)
    finally:
        db.close()
    click.echo(f"[SUCCESS] Deleted group {group.name}")


# --- Presets ---


@click.command()
@click.argument("group_ref")
@click.argument("name")
@_request_options
@click.option("--preset-id", default=None, help="Overwrite this existing preset")
@_handle_errors
def preset_save(
    group_ref: str,
    name: str,
    url: str | None,
    appkey: str | None,
    password: str | None,
    ver: str | None,
    timestamp: str | None,
    data_raw: str | None,
    data_b64: str | None,
    preset_id: str | None,
) -> None:
    """Save request fields as preset NAME in group GROUP_REF."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    repo = PresetRepository(db)
    try:
        group = repo.resolve_group(group_ref)
        base = None
        if preset_id:
            found = repo.get_preset(preset_id)
            if found is None:
                raise ValueError(f"Unknown preset: {preset_id}")
            base = found[1].request
        request = _merge_request(
            base,
            url=url,
            appkey=appkey,
            password=password,
            ver=ver,
            timestamp=timestamp,
            data_raw=data_raw,
            data_b64=data_b64,
        )
        if preset_id:
            preset = PresetItem(id=preset_id, name=name, request=request)
        else:
            preset = PresetItem(name=name, request=request)
        repo.upsert_preset(group.id, preset)
    finally:
        db.close()
    click.echo(f"[SUCCESS] Saved preset {preset.name} [{preset.id}] in {group.name}")


@click.command()
@click.argument("preset_id")
@click.option("--show-password", is_flag=True, help="Print the password unmasked")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
@_handle_errors
def preset_show(preset_id: str, show_password: bool, as_json: bool) -> None:
    """Show a saved preset."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    try:
        found = PresetRepository(db).get_preset(preset_id)
    finally:
        db.close()
    if found is None:
        raise ValueError(f"Unknown preset: {preset_id}")
    _group_id, preset = found

    if as_json:
        if not show_password:
            masked = preset.request.model_copy(update={"password": _mask(preset.request.password)})
            preset = preset.model_copy(update={"request": masked})
        click.echo(_to_json(preset))
        return
    click.echo(f"{preset.name}  [{preset.id}]  updated {format_iso(preset.updated_at.isoformat())}")
    _print_request(preset.request, show_password)


@click.command()
@click.argument("preset_id")
@_handle_errors
def preset_clone(preset_id: str) -> None:
    """Clone a preset within its group."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    repo = PresetRepository(db)
    try:
        found = repo.get_preset(preset_id)
        if found is None:
            raise ValueError(f"Unknown preset: {preset_id}")
        clone = repo.clone_preset(found[0], preset_id)
    finally:
        db.close()
    click.echo(f"[SUCCESS] Cloned to {clone.name} [{clone.id}]")


@click.command()
@click.argument("preset_id")
@_handle_errors
def preset_delete(preset_id: str) -> None:
    """Delete a preset."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    repo = PresetRepository(db)
    try:
        found = repo.get_preset(preset_id)
        if found is None:
            raise ValueError(f"Unknown preset: {preset_id}")
        repo.delete_preset(found[0], preset_id)
    finally:
        db.close()
    click.echo(f"[SUCCESS] Deleted preset {found[1].name}")


@click.command()
@click.option("--group-name", default=SAMPLE_GROUP_NAME, help="Group to create if none exist")
@_handle_errors
def preset_sample(group_name: str) -> None:
    """Add a sample preset to the first group."""
    _config, db = _setup()

    from signdesk.repositories.preset_repository import PresetRepository

    try:
        preset = PresetRepository(db).ensure_group_with_preset(group_name, SAMPLE_REQUEST)
    finally:
        db.close()
    click.echo(f"[SUCCESS] Added {preset.name} [{preset.id}]")


# --- History ---


@click.command("history")
@click.option("--limit", default=20, type=int, help="Max entries to display")
@_handle_errors
def list_history(limit: int) -> None:
    """List recent sends, newest first."""
    _config, db = _setup()

    from signdesk.repositories.history_repository import HistoryRepository

    repo = HistoryRepository(db)
    try:
        items = repo.list_items(limit=limit)
        total = repo.count()
    finally:
        db.close()

    if not items:
        click.echo("No history.")
        return
    click.echo(f"History ({len(items)} of {total}):")
    for item in items:
        _print_history_line(item)


@click.command()
@click.argument("history_id")
@click.option("--show-password", is_flag=True, help="Print the password unmasked")
@_handle_errors
def history_show(history_id: str, show_password: bool) -> None:
    """Show a history entry with its request and response."""
    _config, db = _setup()

    from signdesk.repositories.history_repository import HistoryRepository

    try:
        item = HistoryRepository(db).get(history_id)
    finally:
        db.close()
    if item is None:
        raise ValueError(f"Unknown history entry: {history_id}")

    _print_history_line(item)
    summary = item.request_summary
    click.echo(f"  timestamp: {summary.timestamp}")
    click.echo(f"  sign:      {summary.sign}")
    click.echo(f"  data len:  {summary.data_b64_len}")
    if item.request is not None:
        click.echo("Request:")
        _print_request(item.request, show_password)
    click.echo("Response:")
    click.echo(item.response_text)


@click.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@_handle_errors
def history_clear(yes: bool) -> None:
    """Delete all history."""
    if not yes:
        click.confirm("Delete all history?", abort=True)
    _config, db = _setup()

    from signdesk.repositories.history_repository import HistoryRepository

    try:
        removed = HistoryRepository(db).clear()
    finally:
        db.close()
    click.echo(f"[SUCCESS] Cleared {removed} history entries")


# --- Backup ---


@click.command("export")
@click.option("--output", default=None, help="Output path ('-' for stdout)")
@_handle_errors
def export_data(output: str | None) -> None:
    """Export groups, presets and history to JSON."""
    config, db = _setup()

    from signdesk.repositories.history_repository import HistoryRepository
    from signdesk.repositories.preset_repository import PresetRepository
    from signdesk.services.backup import backup_filename, export_all

    try:
        data = export_all(PresetRepository(db), HistoryRepository(db), config.history_limit)
    finally:
        db.close()

    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output == "-":
        click.echo(text)
        return
    path = Path(output or backup_filename())
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot write {path}: {e.strerror or e}") from e
    click.echo(f"[SUCCESS] Exported to {path}")


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@_handle_errors
def import_data(path: str, yes: bool) -> None:
    """Replace all local data with an exported JSON file."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e

    if not yes:
        click.confirm("Importing replaces all groups, presets and history. Continue?", abort=True)

    _config, db = _setup()

    from signdesk.repositories.history_repository import HistoryRepository
    from signdesk.repositories.preset_repository import PresetRepository
    from signdesk.services.backup import import_all

    try:
        result = import_all(payload, PresetRepository(db), HistoryRepository(db))
    finally:
        db.close()
    if result is None:
        raise ValueError("import payload must contain 'groups' and 'history'")
    groups, history = result
    click.echo(
        f"[SUCCESS] Imported {len(groups.groups)} groups and {len(history.items)} history entries"
    )
