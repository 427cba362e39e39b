"""CLI entry point for SignDesk."""

from __future__ import annotations

import click

from signdesk.cli.commands import (
    decode,
    encode,
    export_data,
    group_create,
    group_delete,
    group_rename,
    history_clear,
    history_show,
    import_data,
    list_groups,
    list_history,
    md5_upper_hex,
    preset_clone,
    preset_delete,
    preset_sample,
    preset_save,
    preset_show,
    send,
    sign,
    timestamp,
)


@click.group()
def cli() -> None:
    """SignDesk: MD5 request signing and signed multipart API workbench."""


cli.add_command(md5_upper_hex)
cli.add_command(sign)
cli.add_command(encode)
cli.add_command(decode)
cli.add_command(timestamp)
cli.add_command(send)
cli.add_command(list_groups)
cli.add_command(group_create)
cli.add_command(group_rename)
cli.add_command(group_delete)
cli.add_command(preset_save)
cli.add_command(preset_show)
cli.add_command(preset_clone)
cli.add_command(preset_delete)
cli.add_command(preset_sample)
cli.add_command(list_history)
cli.add_command(history_show)
cli.add_command(history_clear)
cli.add_command(export_data)
cli.add_command(import_data)
