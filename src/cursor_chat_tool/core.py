"""Core data models for cursor-chat-tool."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Message:
    """A single message within a chat."""

    role: str  # "user" | "assistant" | "system"
    content: str = ""
    timestamp: Optional[datetime] = None  # None means unknown

    @property
    def is_user(self) -> bool:
        return self.role == "user"


@dataclass(frozen=True)
class Chat:
    """A single conversation read from one storage row."""

    id: str  # "<workspace dir>_<rowid>"
    title: str = ""
    request_id: str = ""
    messages: list[Message] = field(default_factory=list)

    @property
    def last_message_time(self) -> datetime:
        """Timestamp of the last message, or the epoch when unknown."""
        if not self.messages:
            return EPOCH
        return self.messages[-1].timestamp or EPOCH

    def with_request_id(self, request_id: str) -> "Chat":
        """Return a copy of this chat carrying ``request_id``."""
        return replace(self, request_id=request_id)
