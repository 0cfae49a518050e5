"""Load and look up chats stored in Cursor's workspace storage."""

import logging
from pathlib import Path
from typing import Sequence

from .config import get_workspace_storage_path
from .core import Chat
from .parser import parse_one
from .resolver import resolve
from .scanner import scan

logger = logging.getLogger(__name__)


class ChatHistory:
    """Read-only access to the chats under one workspaceStorage directory."""

    def __init__(self, storage_root: str | Path | None = None):
        self._storage_root = Path(storage_root).expanduser() if storage_root else None

    def get_base_path(self) -> Path:
        """Return the workspaceStorage directory to read from."""
        return self._storage_root or get_workspace_storage_path()

    def is_available(self) -> bool:
        return self.get_base_path().is_dir()

    def load_all_chats(self, include_empty: bool = False) -> list[Chat]:
        """Return every chat, newest first.

        Chats without messages are left out unless ``include_empty`` is set.

        Raises:
            StorageUnavailable: the storage directory does not exist.
        """
        base = self.get_base_path()
        logger.debug("Searching for chats in %s (include_empty=%s)", base, include_empty)

        chats = []
        rows = unparseable = skipped = 0
        for chat_id, raw_value in scan(base):
            rows += 1
            chat = parse_one(chat_id, raw_value)
            if chat is None:
                unparseable += 1
                continue
            if chat.messages or include_empty:
                chats.append(chat)
            else:
                skipped += 1

        if skipped:
            logger.debug("Skipped %d empty chats (no messages)", skipped)
        if unparseable:
            logger.debug("Ignored %d rows that hold no chat data", unparseable)

        chats.sort(key=lambda c: c.last_message_time, reverse=True)
        logger.debug("Read %d rows, returning %d chats", rows, len(chats))
        return chats

    def resolve(self, chats: Sequence[Chat], identifier: str, allow_index: bool = True) -> Chat | None:
        """Resolve ``identifier`` against ``chats``, searching storage directly on a miss."""
        return resolve(chats, identifier, storage_root=self.get_base_path(), allow_index=allow_index)

    def get_chat(self, identifier: str) -> Chat | None:
        """Find a chat by list position, id, or request id."""
        return self.resolve(self.load_all_chats(), identifier)

    def find_by_request_id(self, request_id: str) -> Chat | None:
        """Find a chat by request id or chat id; numbers are not list positions here."""
        chats = self.load_all_chats(include_empty=True)
        return self.resolve(chats, request_id, allow_index=False)

    find_by_identifier = get_chat
