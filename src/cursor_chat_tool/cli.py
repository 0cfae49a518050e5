"""CLI entry point for cursor-chat-tool."""

import logging
from pathlib import Path

import click
from click_default_group import DefaultGroup

from .config import DEFAULT_CONFIG_PATH, Config
from .core import Chat
from .errors import IndexOutOfRange, StorageUnavailable
from .export import EXTENSIONS, extract_chats, write_request_json
from .history import ChatHistory
from .tui import ChatBrowser, list_title, request_id_display

ALL_CHATS = ("all", "alle")


def _load_chats(history: ChatHistory, include_empty: bool) -> list[Chat]:
    try:
        return history.load_all_chats(include_empty=include_empty)
    except StorageUnavailable as e:
        raise click.ClickException(str(e)) from e


def _resolve(lookup, identifier: str) -> Chat | None:
    try:
        return lookup(identifier)
    except StorageUnavailable as e:
        raise click.ClickException(str(e)) from e
    except IndexOutOfRange as e:
        raise click.ClickException(str(e)) from e
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="IDENTIFIER") from e


@click.group(cls=DefaultGroup, default="request-id")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the JSON configuration file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.option("--show-empty", is_flag=True, help="Include chats without messages.")
@click.version_option(None, "--version", package_name="cursor-chat-tool")
@click.pass_context
def main(ctx, config_path, verbose, show_empty):
    """Browse and export Cursor chat history.

    A bare IDENTIFIER (request id, chat id or part of one) exports that chat
    as JSON to the current directory.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )
    config = Config.load(config_path)
    ctx.obj = {
        "config": config,
        "history": ChatHistory(config.workspace_storage_path),
        "show_empty": show_empty,
    }


@main.command("list")
@click.pass_obj
def list_cmd(obj):
    """List all chat histories, newest first."""
    chats = _load_chats(obj["history"], obj["show_empty"])
    if not chats:
        click.echo("No chat history found")
        return

    click.echo("=== Cursor Chat History Browser ===")
    click.echo("")
    click.echo("ID | Title | Request ID | Count")
    click.echo("-" * 40)
    for i, chat in enumerate(chats, start=1):
        click.echo(f"{i} | {list_title(chat)} | {request_id_display(chat)} | {len(chat.messages)}")
    click.echo("")
    click.echo(f"Found {len(chats)} chat histories")


@main.command("tui")
@click.pass_obj
def tui_cmd(obj):
    """Open the interactive chat browser."""
    history = obj["history"]
    chats = _load_chats(history, obj["show_empty"])
    if not chats:
        click.echo(f"No chat histories found in {history.get_base_path()}")
        return
    ChatBrowser(chats).run()


@main.command("extract")
@click.argument("identifier")
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice(sorted(EXTENSIONS), case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format.",
)
@click.option("-o", "--output", type=click.Path(file_okay=False), help="Output directory.")
@click.option(
    "-p",
    "--output-path",
    type=click.Path(dir_okay=False),
    help="Full output path without extension.",
)
@click.pass_obj
def extract_cmd(obj, identifier, fmt, output, output_path):
    """Extract one chat, or 'all' chats, to files.

    IDENTIFIER is a number from the list, a chat id, a request id, or part
    of one.
    """
    history = obj["history"]
    output_dir = Path(output) if output else obj["config"].output_dir

    if identifier.lower() in ALL_CHATS:
        chats = _load_chats(history, obj["show_empty"])
    else:
        chat = _resolve(history.get_chat, identifier)
        chats = [chat] if chat is not None else []

    if not chats:
        click.echo("No chats found to extract.")
        return

    written, skipped = extract_chats(chats, output_dir, fmt, custom_path=output_path)
    for path in written:
        click.echo(f"Chat extracted to: {path.name}")
    click.echo(f"Extraction complete! {len(written)} chat(s) extracted to {output_dir}")
    if skipped:
        click.echo(f"Skipped {skipped} empty chats (no messages)")


@main.command("request-id")
@click.argument("request_id")
@click.option(
    "-d",
    "--output-dir",
    type=click.Path(file_okay=False),
    help="Directory for the JSON file (default: current directory).",
)
@click.option(
    "-p",
    "--output-path",
    type=click.Path(dir_okay=False),
    help="Full output path without extension.",
)
@click.pass_obj
def request_id_cmd(obj, request_id, output_dir, output_path):
    """Export the chat matching REQUEST_ID as JSON."""
    chat = _resolve(obj["history"].find_by_request_id, request_id)
    if chat is None:
        click.echo(f"No chat found with request ID: {request_id}")
        return

    path = write_request_json(chat, output_dir or Path.cwd(), custom_filename=output_path)
    click.echo(f'Chat with request ID "{chat.request_id or chat.id}" saved as {path.name}')
