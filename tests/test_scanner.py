"""Tests for the workspace scanner and the direct fallback scan."""

import json
import logging

import pytest

from cursor_chat_tool.errors import DatabaseUnreadable, StorageUnavailable
from cursor_chat_tool.scanner import (
    CHAT_DATA_KEYS,
    make_chat_id,
    read_item_rows,
    scan,
    scan_for_identifier,
)

from .conftest import CHAT_DATA_KEY, LEGACY_KEY, write_workspace_db


class TestScan:
    def test_yields_rows_under_known_keys(self, tmp_storage, legacy_payload, chat_data_payload):
        rows = list(scan(tmp_storage))
        assert rows == [
            ("ws-current_2", chat_data_payload),
            ("ws-legacy_1", legacy_payload),
        ]

    def test_both_historical_keys_are_checked(self):
        assert LEGACY_KEY in CHAT_DATA_KEYS
        assert CHAT_DATA_KEY in CHAT_DATA_KEYS

    def test_chat_id_format(self):
        assert make_chat_id("0a1b2c", 17) == "0a1b2c_17"

    def test_skips_directories_without_database(self, make_workspace, legacy_payload):
        storage = make_workspace("ws-a", [(LEGACY_KEY, legacy_payload)])
        (storage / "no-db-here").mkdir()
        (storage / "stray-file.txt").write_text("ignore me")
        assert [chat_id for chat_id, _ in scan(storage)] == ["ws-a_1"]

    def test_corrupt_database_is_skipped(self, make_workspace, legacy_payload, caplog):
        storage = make_workspace("ws-good", [(LEGACY_KEY, legacy_payload)])
        bad = storage / "ws-bad"
        bad.mkdir()
        (bad / "state.vscdb").write_bytes(b"this is not a sqlite database" * 10)

        with caplog.at_level(logging.WARNING, logger="cursor_chat_tool.scanner"):
            rows = list(scan(storage))

        assert [chat_id for chat_id, _ in rows] == ["ws-good_1"]
        assert "ws-bad" in caplog.text

    def test_database_without_item_table_is_skipped(self, make_workspace, legacy_payload):
        import sqlite3

        storage = make_workspace("ws-good", [(LEGACY_KEY, legacy_payload)])
        odd = storage / "ws-odd"
        odd.mkdir()
        conn = sqlite3.connect(str(odd / "state.vscdb"))
        conn.execute("CREATE TABLE cursorDiskKV (key TEXT, value BLOB)")
        conn.commit()
        conn.close()

        assert [chat_id for chat_id, _ in scan(storage)] == ["ws-good_1"]

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(StorageUnavailable):
            list(scan(tmp_path / "nonexistent"))

    def test_scan_is_restartable(self, tmp_storage):
        assert list(scan(tmp_storage)) == list(scan(tmp_storage))

    def test_blob_values_are_decoded(self, make_workspace):
        storage = make_workspace("ws-blob", [(LEGACY_KEY, b'[{"text": "from blob"}]')])
        [(_, value)] = list(scan(storage))
        assert value == '[{"text": "from blob"}]'


class TestReadItemRows:
    def test_unreadable_database_raises(self, tmp_path):
        db_path = tmp_path / "state.vscdb"
        db_path.write_bytes(b"garbage" * 100)
        with pytest.raises(DatabaseUnreadable):
            read_item_rows(db_path)

    def test_path_with_uri_characters(self, tmp_path):
        db_path = write_workspace_db(tmp_path / "odd ?#% name", [("a", "1")])
        assert read_item_rows(db_path) == [(1, "a", "1")]

    def test_all_rows_without_key_filter(self, tmp_path):
        db_path = write_workspace_db(tmp_path / "ws", [("a", "1"), ("b", "2")])
        assert read_item_rows(db_path) == [(1, "a", "1"), (2, "b", "2")]


class TestScanForIdentifier:
    def test_finds_rows_under_any_key(self, make_workspace):
        payload = json.dumps({"composerId": "zzz-uuid-999", "messages": [{"text": "hidden"}]})
        storage = make_workspace("ws-x", [("composer.composerData", payload)])

        chat = scan_for_identifier(storage, "zzz-uuid-999")
        assert chat is not None
        assert chat.id == "ws-x_1"
        assert chat.messages[0].content == "hidden"

    def test_sets_request_id_when_missing(self, make_workspace):
        payload = json.dumps({"messages": [{"text": "about zzz-uuid-999"}]})
        storage = make_workspace("ws-x", [("some.key", payload)])
        assert scan_for_identifier(storage, "zzz-uuid-999").request_id == "zzz-uuid-999"

    def test_keeps_existing_request_id(self, make_workspace):
        payload = json.dumps({"requestId": "real-id", "messages": [{"text": "zzz-uuid-999"}]})
        storage = make_workspace("ws-x", [("some.key", payload)])
        assert scan_for_identifier(storage, "zzz-uuid-999").request_id == "real-id"

    def test_unparseable_match_does_not_stop_scan(self, make_workspace):
        storage = make_workspace("ws-a", [("notes", "plain text mentioning zzz-uuid-999")])
        make_workspace("ws-b", [("other", json.dumps([{"text": "zzz-uuid-999 here"}]))])

        chat = scan_for_identifier(storage, "zzz-uuid-999")
        assert chat.id == "ws-b_1"

    def test_non_chat_array_row_is_skipped(self, make_workspace):
        chat_row = json.dumps({"messages": [{"text": "see uuid-77"}]})
        storage = make_workspace("ws-a", [
            ("views.pinned", json.dumps([{"id": "view", "ref": "uuid-77"}])),
            (CHAT_DATA_KEY, chat_row),
        ])

        chat = scan_for_identifier(storage, "uuid-77")
        assert chat.id == "ws-a_2"
        assert chat.messages[0].content == "see uuid-77"

    def test_match_is_case_sensitive(self, make_workspace):
        payload = json.dumps({"messages": [{"text": "ZZZ-UUID-999"}]})
        storage = make_workspace("ws-x", [("some.key", payload)])
        assert scan_for_identifier(storage, "zzz-uuid-999") is None

    def test_returns_none_without_match(self, tmp_storage):
        assert scan_for_identifier(tmp_storage, "not-anywhere") is None

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(StorageUnavailable):
            scan_for_identifier(tmp_path / "nonexistent", "abc")
