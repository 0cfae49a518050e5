"""Shared test fixtures for cursor-chat-tool."""

import json
import sqlite3
from datetime import datetime, timezone

import pytest

LEGACY_KEY = "aiService.prompts"
CHAT_DATA_KEY = "workbench.panel.aichat.view.aichat.chatdata"

MORNING_MS = int(datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc).timestamp() * 1000)
NOON_MS = int(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc).timestamp() * 1000)


def write_workspace_db(ws_dir, rows):
    """Create ``ws_dir/state.vscdb`` holding ``rows`` of (key, value) in order."""
    ws_dir.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(ws_dir / "state.vscdb"))
    conn.execute("CREATE TABLE ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
    for key, value in rows:
        conn.execute("INSERT INTO ItemTable VALUES (?, ?)", (key, value))
    conn.commit()
    conn.close()
    return ws_dir / "state.vscdb"


@pytest.fixture
def make_workspace(tmp_path):
    """Factory creating workspace directories under a workspaceStorage root."""
    storage = tmp_path / "workspaceStorage"
    storage.mkdir()

    def _make(name, rows):
        write_workspace_db(storage / name, rows)
        return storage

    _make.root = storage
    return _make


@pytest.fixture
def legacy_payload():
    """Flat prompt array: one prompt/response pair."""
    return json.dumps([
        {
            "prompt": "How do I read a SQLite file in Python?",
            "response": "Use the sqlite3 module:\n```python\nimport sqlite3\n```",
            "timestamp": MORNING_MS,
        },
    ])


@pytest.fixture
def chat_data_payload():
    """Nested chat data: one tab with metadata and a single message."""
    return json.dumps({
        "selectedTabId": "tab-1",
        "tabs": [
            {
                "tabId": "tab-1",
                "metadata": {"title": "Dark mode", "requestId": "abc-123"},
                "bubbles": [
                    {"type": "user", "text": "Add dark mode support", "timestamp": NOON_MS},
                ],
            }
        ],
    })


@pytest.fixture
def tmp_storage(make_workspace, legacy_payload, chat_data_payload):
    """Two workspaces: legacy key with two messages, current key with one."""
    make_workspace("ws-legacy", [(LEGACY_KEY, legacy_payload)])
    make_workspace("ws-current", [
        ("workbench.colorTheme", json.dumps("Default Dark+")),
        (CHAT_DATA_KEY, chat_data_payload),
    ])
    return make_workspace.root
