"""Read chat rows from Cursor's per-workspace SQLite databases.

Each immediate subdirectory of ``workspaceStorage`` may hold a
``state.vscdb`` database with an ``ItemTable(key, value)`` key-value table.
All database access is read-only, and every connection is closed before the
scanner moves on to the next workspace.
"""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterator

from .core import Chat
from .errors import DatabaseUnreadable, StorageUnavailable
from .parser import parse_one

logger = logging.getLogger(__name__)

DB_FILENAME = "state.vscdb"

# Keys Cursor has stored chat data under, oldest first
LEGACY_PROMPTS_KEY = "aiService.prompts"
CHAT_DATA_KEY = "workbench.panel.aichat.view.aichat.chatdata"
CHAT_DATA_KEYS = (LEGACY_PROMPTS_KEY, CHAT_DATA_KEY)


def make_chat_id(workspace_name: str, rowid: int) -> str:
    """Build the composite chat id used throughout the tool."""
    return f"{workspace_name}_{rowid}"


def iter_workspace_databases(storage_root: Path) -> Iterator[tuple[str, Path]]:
    """Yield ``(workspace name, database path)`` for each workspace with a database.

    Raises:
        StorageUnavailable: ``storage_root`` is not a directory.
    """
    storage_root = Path(storage_root)
    if not storage_root.is_dir():
        raise StorageUnavailable(storage_root)

    for ws_dir in sorted(storage_root.iterdir(), key=lambda p: p.name):
        if not ws_dir.is_dir():
            continue
        db_path = ws_dir / DB_FILENAME
        if not db_path.is_file():
            continue
        yield ws_dir.name, db_path


def read_item_rows(db_path: Path, keys: tuple[str, ...] | None = None) -> list[tuple[int, str, str]]:
    """Read ``(rowid, key, value)`` rows from a database's ItemTable.

    With ``keys`` only rows under those keys are returned; otherwise every
    row is. The connection is closed before returning.

    Raises:
        DatabaseUnreadable: the database cannot be opened or queried.
    """
    query = "SELECT rowid, [key], value FROM ItemTable"
    params: tuple = ()
    if keys:
        placeholders = ", ".join("?" for _ in keys)
        query += f" WHERE [key] IN ({placeholders})"
        params = tuple(keys)
    query += " ORDER BY rowid"

    try:
        with closing(sqlite3.connect(_read_only_uri(db_path), uri=True)) as conn:
            rows = conn.execute(query, params).fetchall()
    except (sqlite3.Error, OSError) as e:
        raise DatabaseUnreadable(db_path, e) from e

    return [(rowid, key, _as_text(value)) for rowid, key, value in rows]


def scan(storage_root: Path) -> Iterator[tuple[str, str]]:
    """Yield ``(chat_id, raw_value)`` for every row under a known chat-data key.

    Workspaces whose database cannot be read are logged and skipped.

    Raises:
        StorageUnavailable: ``storage_root`` is not a directory.
    """
    for ws_name, db_path in iter_workspace_databases(storage_root):
        try:
            rows = read_item_rows(db_path, CHAT_DATA_KEYS)
        except DatabaseUnreadable as e:
            logger.warning("%s", e)
            continue

        for rowid, key, value in rows:
            logger.debug("Found %s in %s (rowid %s)", key, db_path, rowid)
            yield make_chat_id(ws_name, rowid), value


def scan_for_identifier(storage_root: Path, identifier: str) -> Chat | None:
    """Search every stored value of every workspace for ``identifier``.

    This is the slow last-resort lookup: unlike ``scan`` it is not limited to
    the known chat-data keys. The first row that contains ``identifier`` and
    parses into a chat wins. If that chat has no request id, the returned copy
    carries ``identifier`` as its request id.

    Raises:
        StorageUnavailable: ``storage_root`` is not a directory.
    """
    for ws_name, db_path in iter_workspace_databases(storage_root):
        try:
            rows = read_item_rows(db_path)
        except DatabaseUnreadable as e:
            logger.warning("%s", e)
            continue

        for rowid, key, value in rows:
            if identifier not in value:
                continue

            chat_id = make_chat_id(ws_name, rowid)
            logger.debug("Found %r in %s, rowid %s, key %s", identifier, db_path, rowid, key)
            chat = parse_one(chat_id, value)
            if chat is None:
                logger.debug("Row %s mentions %r but holds no chat", chat_id, identifier)
                continue

            if not chat.request_id:
                return chat.with_request_id(identifier)
            return chat

    return None


def _read_only_uri(db_path: Path) -> str:
    # as_uri() percent-encodes '?', '#' and '%' in workspace paths
    return f"{Path(db_path).absolute().as_uri()}?mode=ro"


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)
