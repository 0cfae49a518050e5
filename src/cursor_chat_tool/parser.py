"""Turn raw ItemTable values into normalized chats.

Cursor has stored chat data under more than one shape over time:

- a flat JSON array of prompt entries (``aiService.prompts``), where an
  entry may also carry a prompt/response pair;
- a nested chat-data object (``workbench.panel.aichat.view.aichat.chatdata``)
  holding tabs of message "bubbles" plus metadata such as the title.

``decode_payload`` classifies a value into one of the variants below and
``normalize`` is the single place that turns a variant into a ``Chat``.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from .core import Chat, Message
from .errors import UnparseableRecord

logger = logging.getLogger(__name__)

ROLE_SYNONYMS = {
    "user": "user",
    "human": "user",
    "assistant": "assistant",
    "ai": "assistant",
    "bot": "assistant",
    "model": "assistant",
    "system": "system",
}

# Cursor's numeric bubble types
BUBBLE_TYPES = {1: "user", 2: "assistant"}

CONTENT_KEYS = ("text", "content", "message", "rawText")
TIMESTAMP_KEYS = ("timestamp", "unixMs", "createdAt", "time")
TITLE_KEYS = ("title", "chatTitle", "name")
REQUEST_ID_KEYS = ("requestId", "request_id")
MESSAGE_LIST_KEYS = ("messages", "bubbles")

# An array is only a prompt list if some entry carries one of these
PROMPT_ENTRY_KEYS = ("prompt", "response", "role", "isUser", "is_user") + CONTENT_KEYS


@dataclass(frozen=True)
class FlatPrompt:
    """Legacy payload: a list of prompt entries."""

    entries: list[dict]


@dataclass(frozen=True)
class NestedChatData:
    """Current payload: one chat-data node with metadata and messages."""

    metadata: dict
    messages: list[dict]


Payload = Union[FlatPrompt, NestedChatData]


def parse_one(chat_id: str, raw_value: Any) -> Chat | None:
    """Parse a stored value into a ``Chat``, or return None if it holds no chat."""
    try:
        return normalize(chat_id, decode_payload(raw_value))
    except UnparseableRecord as e:
        logger.debug("Row %s holds no chat: %s", chat_id, e)
        return None


def decode_payload(raw_value: Any) -> Payload:
    """Decode a raw value and classify its shape.

    Raises:
        UnparseableRecord: the value is not JSON text or matches no known shape.
    """
    if isinstance(raw_value, (bytes, bytearray)):
        raw_value = raw_value.decode("utf-8", errors="replace")
    if not isinstance(raw_value, str):
        raise UnparseableRecord(f"expected text, got {type(raw_value).__name__}")

    try:
        data = json.loads(raw_value)
    except (ValueError, RecursionError) as e:
        raise UnparseableRecord(f"invalid JSON: {e}") from e

    if isinstance(data, list):
        if not all(isinstance(entry, dict) for entry in data):
            raise UnparseableRecord("array contains non-object entries")
        if data and not any(_is_prompt_entry(entry) for entry in data):
            raise UnparseableRecord("array holds no prompt entries")
        return FlatPrompt(entries=data)

    if isinstance(data, dict):
        node = _find_chat_node(data)
        if node is not None:
            metadata = _collect_metadata(data, node)
            messages = [m for m in _message_list(node) if isinstance(m, dict)]
            return NestedChatData(metadata=metadata, messages=messages)
        raise UnparseableRecord("object has no chat data")

    raise UnparseableRecord(f"unsupported JSON value: {type(data).__name__}")


def normalize(chat_id: str, payload: Payload) -> Chat:
    """Build a ``Chat`` from a decoded payload."""
    if isinstance(payload, FlatPrompt):
        messages = []
        for entry in payload.entries:
            messages.extend(_flat_entry_messages(entry))
        # The legacy array carries no chat-level metadata
        return Chat(id=chat_id, messages=messages)

    return Chat(
        id=chat_id,
        title=payload.metadata.get("title", ""),
        request_id=payload.metadata.get("requestId", ""),
        messages=[_to_message(m) for m in payload.messages],
    )


def detect_role(entry: dict) -> str:
    """Infer the role of a stored message.

    Checks a string ``role`` field, then the bubble ``type`` (string or
    Cursor's numeric codes), then a boolean is-user flag. Entries carrying
    none of these are treated as assistant output.
    """
    role = entry.get("role")
    if isinstance(role, str) and role.strip().lower() in ROLE_SYNONYMS:
        return ROLE_SYNONYMS[role.strip().lower()]

    kind = entry.get("type")
    if isinstance(kind, str) and kind.strip().lower() in ROLE_SYNONYMS:
        return ROLE_SYNONYMS[kind.strip().lower()]
    if isinstance(kind, int) and not isinstance(kind, bool) and kind in BUBBLE_TYPES:
        return BUBBLE_TYPES[kind]

    for flag in ("isUser", "is_user"):
        value = entry.get(flag)
        if isinstance(value, bool):
            return "user" if value else "assistant"

    return "assistant"


# ── Private helpers ──────────────────────────────────────────────


def _find_chat_node(data: dict) -> dict | None:
    """Locate the object that holds the message list."""
    if _message_list(data) is not None:
        return data

    wrapped = data.get("chatData")
    if isinstance(wrapped, dict) and _message_list(wrapped) is not None:
        return wrapped

    tabs = data.get("tabs")
    if isinstance(tabs, list):
        candidates = [t for t in tabs if isinstance(t, dict) and _message_list(t) is not None]
        selected = data.get("selectedTabId")
        for tab in candidates:
            if selected and tab.get("tabId") == selected:
                return tab
        if candidates:
            return candidates[0]

    return None


def _message_list(node: dict) -> list | None:
    for key in MESSAGE_LIST_KEYS:
        value = node.get(key)
        if isinstance(value, list):
            return value
    return None


def _collect_metadata(root: dict, node: dict) -> dict:
    """Resolve ``title`` and ``requestId`` from the chat's metadata sources.

    The node's ``metadata`` block wins, then the node, then the root, whichever
    key spelling each source uses. Fields with no value are left out.
    """
    sources = [s for s in (node.get("metadata"), node, root) if isinstance(s, dict)]
    metadata = {}
    for field, keys in (("title", TITLE_KEYS), ("requestId", REQUEST_ID_KEYS)):
        for source in sources:
            value = _first_string(source, keys, skip_empty=True)
            if value:
                metadata[field] = value
                break
    return metadata


def _is_prompt_entry(entry: dict) -> bool:
    return any(key in entry for key in PROMPT_ENTRY_KEYS)


def _flat_entry_messages(entry: dict) -> list[Message]:
    """Expand one legacy array entry into one or two messages."""
    if "prompt" in entry or "response" in entry:
        timestamp = _first_timestamp(entry)
        pair = []
        if "prompt" in entry:
            pair.append(Message(role="user", content=_as_text(entry.get("prompt")), timestamp=timestamp))
        if "response" in entry:
            pair.append(Message(role="assistant", content=_as_text(entry.get("response")), timestamp=timestamp))
        return pair
    return [_to_message(entry)]


def _to_message(entry: dict) -> Message:
    return Message(
        role=detect_role(entry),
        content=_first_string(entry, CONTENT_KEYS),
        timestamp=_first_timestamp(entry),
    )


def _first_string(source: dict, keys: tuple[str, ...], skip_empty: bool = False) -> str:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and (value or not skip_empty):
            return value
    return ""


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _first_timestamp(entry: dict) -> datetime | None:
    for key in TIMESTAMP_KEYS:
        value = entry.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return _ms_to_datetime(value)
    return None


def _ms_to_datetime(ms: Optional[int]) -> datetime | None:
    """Convert millisecond timestamp to datetime, or None."""
    if ms is None:
        return None
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None
