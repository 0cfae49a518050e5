"""Export chats to text, Markdown, HTML and JSON files."""

import html
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable

from .core import Chat, Message

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "json": ".json",
    "markdown": ".md",
    "md": ".md",
    "html": ".html",
    "text": ".txt",
}

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")


def display_title(chat: Chat) -> str:
    """Return the chat title, or a placeholder for untitled chats."""
    return chat.title or f"Chat {chat.id}"


def format_timestamp(ts: datetime | None) -> str:
    """Format a message time as ``DD-MM-YYYY HH:MM:SS`` in local time."""
    if ts is None:
        return "unknown"
    return ts.astimezone().strftime("%d-%m-%Y %H:%M:%S")


def sanitize_filename(text: str, max_len: int = 50, fallback: str = "untitled") -> str:
    """Make ``text`` safe to use as part of a filename."""
    if not text:
        return fallback
    text = text[:max_len]
    text = _INVALID_FILENAME_CHARS.sub("_", text)
    return _WHITESPACE.sub("_", text)


def extension_for_format(fmt: str) -> str:
    return EXTENSIONS.get(fmt.lower(), ".txt")


def chat_to_dict(chat: Chat, request_id: str | None = None) -> dict:
    """Convert a chat to the JSON export structure."""
    return {
        "id": chat.id,
        "title": chat.title,
        "requestId": chat.request_id if request_id is None else request_id,
        "messages": [_message_to_dict(msg) for msg in chat.messages],
    }


def chat_to_json(chat: Chat, request_id: str | None = None) -> str:
    """Export a chat as structured JSON."""
    return json.dumps(chat_to_dict(chat, request_id), indent=2, ensure_ascii=False)


def chat_to_text(chat: Chat) -> str:
    """Export a chat as plain text."""
    lines = [
        f"=== {display_title(chat)} ===",
        f"Chat ID: {chat.id}",
        f"Request ID: {chat.request_id}",
        f"Messages: {len(chat.messages)}",
        "",
    ]
    for msg in chat.messages:
        lines.append(f"[{msg.role} - {format_timestamp(msg.timestamp)}]")
        lines.append(msg.content)
        lines.append("")
    return "\n".join(lines) + "\n"


def chat_to_markdown(chat: Chat) -> str:
    """Export a chat as Markdown."""
    lines = [
        f"# {display_title(chat)}",
        "",
        f"**Chat ID:** {chat.id}",
        f"**Request ID:** {chat.request_id}",
        f"**Messages:** {len(chat.messages)}",
        "",
    ]
    for msg in chat.messages:
        lines.append(f"## {msg.role} ({format_timestamp(msg.timestamp)})")
        lines.append("")
        lines.append(msg.content)
        lines.append("")
    return "\n".join(lines) + "\n"


_HTML_STYLE = """\
    body { font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }
    .header { border-bottom: 1px solid #ddd; padding-bottom: 10px; margin-bottom: 20px; }
    .message { margin-bottom: 20px; padding: 10px; border-radius: 5px; }
    .user { background-color: #f0f0f0; }
    .assistant { background-color: #e6f7ff; }
    .timestamp { color: #666; font-size: 0.8em; margin-bottom: 5px; }
    .content { white-space: pre-wrap; }"""


def chat_to_html(chat: Chat) -> str:
    """Export a chat as a standalone HTML page."""
    title = html.escape(display_title(chat))
    lines = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '  <meta charset="UTF-8">',
        f"  <title>{title}</title>",
        "  <style>",
        _HTML_STYLE,
        "  </style>",
        "</head>",
        "<body>",
        '  <div class="header">',
        f"    <h1>{title}</h1>",
        f"    <p>Chat ID: {html.escape(chat.id)}</p>",
        f"    <p>Request ID: {html.escape(chat.request_id)}</p>",
        f"    <p>Messages: {len(chat.messages)}</p>",
        "  </div>",
    ]
    for msg in chat.messages:
        css_class = "user" if msg.is_user else "assistant"
        lines.extend([
            f'  <div class="message {css_class}">',
            f'    <div class="timestamp">Time: {format_timestamp(msg.timestamp)}</div>',
            f'    <div class="role">{html.escape(msg.role)}</div>',
            f'    <div class="content">{html.escape(msg.content)}</div>',
            "  </div>",
        ])
    lines.extend(["</body>", "</html>"])
    return "\n".join(lines) + "\n"


FORMATTERS = {
    "json": chat_to_json,
    "markdown": chat_to_markdown,
    "md": chat_to_markdown,
    "html": chat_to_html,
    "text": chat_to_text,
}


def format_chat(chat: Chat, fmt: str) -> str:
    """Render a chat in ``fmt``; unknown formats render as plain text."""
    return FORMATTERS.get(fmt.lower(), chat_to_text)(chat)


def extract_chats(
    chats: Iterable[Chat],
    output_dir: Path,
    fmt: str,
    custom_path: str | Path | None = None,
) -> tuple[list[Path], int]:
    """Write each non-empty chat to its own file.

    With ``custom_path`` every chat is written to ``custom_path`` plus the
    format's extension. Returns the written paths and the number of empty
    chats skipped.
    """
    output_dir = Path(output_dir).expanduser()
    output_dir.mkdir(parents=True, exist_ok=True)
    extension = extension_for_format(fmt)

    written = []
    skipped = 0
    for chat in chats:
        if not chat.messages:
            skipped += 1
            continue

        if custom_path is not None:
            path = Path(f"{Path(custom_path).expanduser()}{extension}")
            path.parent.mkdir(parents=True, exist_ok=True)
        else:
            path = output_dir / f"{sanitize_filename(chat.title)}_{chat.id}{extension}"

        path.write_text(format_chat(chat, fmt), encoding="utf-8")
        logger.debug("Wrote %s", path)
        written.append(path)

    return written, skipped


def write_request_json(
    chat: Chat,
    output_dir: str | Path,
    custom_filename: str | Path | None = None,
) -> Path:
    """Write one chat as JSON and return the file path."""
    if custom_filename is not None:
        path = Path(f"{Path(custom_filename).expanduser()}.json")
    else:
        path = Path(output_dir).expanduser() / f"{sanitize_filename(chat.title)}-{chat.id}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(chat_to_json(chat), encoding="utf-8")
    return path


def _message_to_dict(msg: Message) -> dict:
    return {
        "role": msg.role,
        "content": msg.content,
        "timestamp": round(msg.timestamp.timestamp() * 1000) if msg.timestamp else None,
    }
