"""Platform-aware path resolution and the optional config file."""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.cursor_chat_tool.conf"
DEFAULT_OUTPUT_DIR = "~/cursor_chats"


def get_workspace_storage_path() -> Path:
    """Return the path to Cursor's workspaceStorage directory."""
    env = os.environ.get("CURSOR_CHAT_STORAGE_PATH")
    if env:
        return Path(env).expanduser()

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Cursor" / "User" / "workspaceStorage"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / "Cursor" / "User" / "workspaceStorage"
    else:  # Linux
        return Path.home() / ".config" / "Cursor" / "User" / "workspaceStorage"


@dataclass
class Config:
    """Resolved settings for one invocation."""

    workspace_storage_path: Path = field(default_factory=get_workspace_storage_path)
    output_dir: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_DIR).expanduser())

    @classmethod
    def load(cls, path: str | Path = DEFAULT_CONFIG_PATH) -> "Config":
        """Load settings from a JSON config file, falling back to defaults.

        Recognized keys are ``workspaceStoragePath`` and ``outputDir``. A
        missing file is not an error; a malformed one is logged and ignored.
        """
        config = cls()
        config_path = Path(path).expanduser()
        if not config_path.exists():
            return config

        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read config file %s: %s", config_path, e)
            return config

        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: expected a JSON object", config_path)
            return config

        storage = data.get("workspaceStoragePath")
        if isinstance(storage, str) and storage:
            config.workspace_storage_path = Path(storage).expanduser()
        output = data.get("outputDir")
        if isinstance(output, str) and output:
            config.output_dir = Path(output).expanduser()
        return config
