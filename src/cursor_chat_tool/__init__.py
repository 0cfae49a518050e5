"""Browse and export Cursor chat history from workspace storage."""

from .core import Chat, Message
from .history import ChatHistory
from .parser import parse_one

__version__ = "0.1.0"

__all__ = ["Chat", "ChatHistory", "Message", "parse_one"]
