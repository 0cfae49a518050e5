"""Tests for the terminal chat browser."""

import json
from unittest.mock import patch

import pytest

from cursor_chat_tool.core import Chat, Message
from cursor_chat_tool.tui import (
    KEY_CTRL_Q,
    KEY_DOWN,
    KEY_ESCAPE,
    KEY_UP,
    ChatBrowser,
    list_title,
    pad_truncate,
    request_id_display,
)


@pytest.fixture
def browser(tmp_path):
    chats = [
        Chat(id="ws1_1", title="First chat", request_id="req-1",
             messages=[Message(role="user", content="hi"), Message(role="assistant", content="hello")]),
        Chat(id="ws2_4", messages=[Message(role="user", content="only one")]),
    ]
    return ChatBrowser(chats, save_dir=tmp_path)


def test_pad_truncate():
    assert pad_truncate("abc", 5) == "abc  "
    assert pad_truncate("abcdefgh", 6) == "abc..."


def test_list_title_and_request_id_fallbacks():
    chat = Chat(id="deadbeef_12")
    assert list_title(chat) == "deadbeef_12"
    assert list_title(Chat(id="x_1", title="Chat x_1")) == "x_1"
    assert request_id_display(chat) == "deadbeef"
    assert request_id_display(Chat(id="x_1", request_id="r")) == "r"


class TestNavigation:
    def test_list_wraps_around(self, browser):
        browser.handle_key(KEY_UP[0])
        assert browser.selected == 1
        browser.handle_key(KEY_DOWN[0])
        assert browser.selected == 0

    def test_enter_opens_and_q_goes_back(self, browser):
        browser.handle_key(KEY_DOWN[0])
        assert browser.handle_key("\r") is True
        assert browser.viewing
        assert browser.current.id == "ws2_4"
        browser.handle_key("q")
        assert not browser.viewing

    def test_escape_goes_back(self, browser):
        browser.handle_key("\r")
        browser.handle_key(KEY_ESCAPE)
        assert not browser.viewing

    def test_q_in_list_exits(self, browser):
        assert browser.handle_key("q") is False

    def test_ctrl_q_exits_anywhere(self, browser):
        browser.handle_key("\r")
        assert browser.handle_key(KEY_CTRL_Q) is False

    def test_scroll_is_clamped(self, browser):
        browser.handle_key("\r")
        browser.handle_key(KEY_UP[0])
        assert browser.scroll == 0
        for _ in range(5):
            browser.handle_key(KEY_DOWN[0])
        assert browser.scroll == 1


class TestRendering:
    def test_render_list(self, browser):
        lines = browser.render_list(100)
        assert "Cursor Chat History Browser" in lines[0]
        assert lines[6].startswith("1   | First chat")
        assert "ws2" in lines[7]
        assert lines[-1] == "Found 2 chat histories"

    def test_render_chat(self, browser):
        browser.handle_key("\r")
        lines = browser.render_chat(80, 30)
        assert "First chat" in lines[0]
        assert any(line.startswith("[User - unknown]") for line in lines)
        assert any(line.startswith("[AI - unknown]") for line in lines)
        assert "Message 1-2 of 2" in lines


def test_save_current(browser, tmp_path):
    browser.handle_key(KEY_DOWN[0])
    browser.handle_key("\r")
    browser.handle_key("s")

    path = tmp_path / "chat-ws2.json"
    assert browser.status == f"Chat saved to {path}"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["requestId"] == "ws2"
    assert data["messages"][0]["content"] == "only one"


def test_run_until_quit(browser):
    keys = iter(["\r", "q", "q"])
    with (
        patch("cursor_chat_tool.tui.click.getchar", side_effect=lambda: next(keys)),
        patch("cursor_chat_tool.tui.click.clear"),
        patch("cursor_chat_tool.tui.click.echo") as echo,
        patch("cursor_chat_tool.tui.click.secho"),
    ):
        browser.run()
    assert echo.called
    assert not browser.viewing


def test_run_stops_on_ctrl_c(browser):
    with (
        patch("cursor_chat_tool.tui.click.getchar", side_effect=KeyboardInterrupt),
        patch("cursor_chat_tool.tui.click.clear"),
        patch("cursor_chat_tool.tui.click.echo"),
        patch("cursor_chat_tool.tui.click.secho"),
    ):
        browser.run()
