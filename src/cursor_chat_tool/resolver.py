"""Resolve a user-supplied identifier to one chat.

The identifier may be a 1-based position in the listed chats, a chat id, a
request id, or a fragment of either. Match stages are tried in order and the
first chat (in list order) that satisfies a stage wins. When no loaded chat
matches, the raw databases are searched directly.
"""

import logging
import re
from pathlib import Path
from typing import Callable, Sequence

from .core import Chat
from .errors import IndexOutOfRange
from .scanner import scan_for_identifier

logger = logging.getLogger(__name__)

INDEX_PATTERN = re.compile(r"-?\d+")

Matcher = Callable[[Chat, str], bool]


def _exact(chat: Chat, identifier: str) -> bool:
    return chat.id == identifier or chat.request_id == identifier


def _exact_ignore_case(chat: Chat, identifier: str) -> bool:
    needle = identifier.lower()
    return chat.id.lower() == needle or chat.request_id.lower() == needle


def _contains(chat: Chat, identifier: str) -> bool:
    needle = identifier.lower()
    return needle in chat.id.lower() or needle in chat.request_id.lower()


MATCH_STAGES: tuple[tuple[str, Matcher], ...] = (
    ("exact", _exact),
    ("case-insensitive", _exact_ignore_case),
    ("partial", _contains),
)


def parse_index(identifier: str) -> int | None:
    """Return the integer value of a numeric identifier, or None."""
    if INDEX_PATTERN.fullmatch(identifier.strip()):
        return int(identifier.strip())
    return None


def select_by_index(chats: Sequence[Chat], index: int) -> Chat:
    """Return the chat at 1-based ``index``.

    Raises:
        IndexOutOfRange: ``index`` is outside ``1..len(chats)``.
    """
    if index < 1 or index > len(chats):
        raise IndexOutOfRange(index, len(chats))
    return chats[index - 1]


def match_loaded(chats: Sequence[Chat], identifier: str) -> Chat | None:
    """Apply the id/request-id match stages to already loaded chats."""
    for stage, matcher in MATCH_STAGES:
        for chat in chats:
            if matcher(chat, identifier):
                logger.debug("Found %s match for %r: %s", stage, identifier, chat.id)
                return chat
    return None


def resolve(
    chats: Sequence[Chat],
    identifier: str,
    storage_root: Path | None = None,
    allow_index: bool = True,
) -> Chat | None:
    """Find the chat ``identifier`` refers to.

    Args:
        chats: Chats in display order (newest first).
        identifier: Position, id, request id, or a fragment of one.
        storage_root: Workspace storage to search directly when nothing in
            ``chats`` matches. No direct search is made when None.
        allow_index: Treat numeric identifiers as 1-based positions. When
            False they are matched like any other text.

    Returns:
        The matching chat, or None.

    Raises:
        ValueError: ``identifier`` is empty.
        IndexOutOfRange: a numeric identifier is outside the list.
    """
    if not identifier or not identifier.strip():
        raise ValueError("identifier must not be empty")

    if allow_index:
        index = parse_index(identifier)
        if index is not None:
            return select_by_index(chats, index)

    logger.debug("Searching %d chats for %r", len(chats), identifier)
    chat = match_loaded(chats, identifier)
    if chat is not None:
        return chat

    if storage_root is None:
        return None

    logger.debug("No match among loaded chats, searching databases directly")
    chat = scan_for_identifier(storage_root, identifier)
    if chat is not None:
        logger.debug("Found match via direct database search: %s", chat.id)
    else:
        logger.debug("No match found for %r", identifier)
    return chat
