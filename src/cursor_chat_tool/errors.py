"""Exception types raised by the chat history core."""


class CursorChatError(Exception):
    """Base class for all cursor-chat-tool errors."""


class StorageUnavailable(CursorChatError):
    """The workspace storage root does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Workspace storage folder not found: {path}")


class DatabaseUnreadable(CursorChatError):
    """A workspace database could not be opened or queried."""

    def __init__(self, db_path, reason):
        self.db_path = db_path
        super().__init__(f"Could not read database {db_path}: {reason}")


class UnparseableRecord(CursorChatError):
    """A stored value is not valid JSON or matches no known payload shape."""


class IndexOutOfRange(CursorChatError):
    """A numeric identifier points outside the current chat list."""

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(
            f"Invalid chat index: {index} (should be between 1 and {count})"
        )

