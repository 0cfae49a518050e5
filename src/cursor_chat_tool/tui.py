"""Interactive terminal browser for chat histories."""

import logging
import shutil
import textwrap
from pathlib import Path

import click

from .core import Chat
from .export import chat_to_json, format_timestamp, sanitize_filename

logger = logging.getLogger(__name__)

# Keys as returned by click.getchar() on POSIX and Windows terminals
KEY_UP = ("\x1b[A", "\xe0H", "\x00H")
KEY_DOWN = ("\x1b[B", "\xe0P", "\x00P")
KEY_ENTER = ("\r", "\n")
KEY_ESCAPE = "\x1b"
KEY_CTRL_Q = "\x11"

TITLE_WIDTH = 40
REQUEST_ID_WIDTH = 40
LIST_HEADER_LINES = 6


def pad_truncate(text: str, width: int) -> str:
    if len(text) > width:
        return text[: width - 3] + "..."
    return text.ljust(width)


def list_title(chat: Chat) -> str:
    """Title shown in chat lists: the title, or the chat id when untitled."""
    if not chat.title or chat.title == f"Chat {chat.id}":
        return chat.id
    return chat.title


def request_id_display(chat: Chat) -> str:
    """Request id shown in chat lists, falling back to the workspace part of the id."""
    return chat.request_id or chat.id.split("_")[0]


class ChatBrowser:
    """Keyboard-driven list and detail view over a fixed list of chats."""

    def __init__(self, chats: list[Chat], save_dir: Path | None = None):
        self.chats = chats
        self.save_dir = save_dir
        self.selected = 0
        self.viewing = False
        self.scroll = 0
        self.status = ""

    @property
    def current(self) -> Chat:
        return self.chats[self.selected]

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the browser should exit."""
        if key == KEY_CTRL_Q:
            return False

        if not self.viewing:
            if key in KEY_DOWN:
                self.selected = (self.selected + 1) % len(self.chats)
            elif key in KEY_UP:
                self.selected = (self.selected - 1) % len(self.chats)
            elif key in KEY_ENTER:
                self.viewing = True
                self.scroll = 0
            elif key == "q":
                return False
            return True

        if key in KEY_DOWN:
            self.scroll = min(self.scroll + 1, max(len(self.current.messages) - 1, 0))
        elif key in KEY_UP:
            self.scroll = max(self.scroll - 1, 0)
        elif key in ("q", KEY_ESCAPE):
            self.viewing = False
        elif key == "s":
            self.status = self.save_current()
        return True

    def save_current(self) -> str:
        """Save the open chat as JSON and return a status line."""
        chat = self.current
        request_id = request_id_display(chat)
        filename = f"{sanitize_filename(chat.title, max_len=30, fallback='chat')}-{request_id}.json"
        path = (self.save_dir or Path.cwd()) / filename
        try:
            path.write_text(chat_to_json(chat, request_id=request_id), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to save %s: %s", path, e)
            return f"Error saving chat: {e}"
        return f"Chat saved to {path}"

    def render_list(self, width: int) -> list[str]:
        lines = [
            "=== Cursor Chat History Browser ===".center(width),
            "",
            "Press Up/Down to navigate, Enter to view chat, q or Ctrl+Q to exit",
            "",
            f"ID  | {pad_truncate('Title', TITLE_WIDTH)} | {pad_truncate('Request ID', REQUEST_ID_WIDTH)} | Count",
            "-" * width,
        ]
        for i, chat in enumerate(self.chats):
            lines.append(
                f"{pad_truncate(str(i + 1), 3)} | "
                f"{pad_truncate(list_title(chat), TITLE_WIDTH)} | "
                f"{pad_truncate(request_id_display(chat), REQUEST_ID_WIDTH)} | "
                f"{len(chat.messages)}"
            )
        lines.append("")
        lines.append(f"Found {len(self.chats)} chat histories")
        return lines

    def render_chat(self, width: int, height: int) -> list[str]:
        chat = self.current
        total = len(chat.messages)
        visible = chat.messages[self.scroll: self.scroll + max(height - 7, 1)]

        lines = [
            f"=== {chat.title or chat.id} ===".center(width),
            "",
            "Press Up/Down to scroll, q or ESC to go back, s to save as JSON",
            "-" * width,
        ]
        for msg in visible:
            sender = "User" if msg.is_user else "AI"
            lines.append(f"[{sender} - {format_timestamp(msg.timestamp)}]")
            for paragraph in msg.content.splitlines() or [""]:
                lines.extend(textwrap.wrap(paragraph, width) or [""])
            lines.append("")
        lines.append("-" * width)

        first = min(self.scroll + 1, total)
        last = min(self.scroll + len(visible), total)
        lines.append(f"Message {first}-{last} of {total}")
        lines.append("[q] Back  [ESC] Back  [s] Save JSON  [Ctrl+Q] Exit".center(width))
        return lines

    def run(self) -> None:
        """Draw and read keys until the user quits."""
        if not self.chats:
            return

        while True:
            width, height = shutil.get_terminal_size()
            click.clear()
            if self.viewing:
                lines = self.render_chat(width, height)
            else:
                lines = self.render_list(width)

            for i, line in enumerate(lines):
                if not self.viewing and i == LIST_HEADER_LINES + self.selected:
                    click.secho(line.ljust(width), fg="white", bg="blue")
                else:
                    click.echo(line)
            if self.viewing and self.status:
                click.secho(self.status.center(width), fg="green")
                self.status = ""

            try:
                key = click.getchar()
            except (KeyboardInterrupt, EOFError):
                break
            if not self.handle_key(key):
                break

        click.clear()
