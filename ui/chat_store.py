"""Client-local chat history.

History is an append-only list of messages stored in a JSON file named by
a fixed application key. It never leaves the client except as context for
the next question.
"""

import json
import logging
import time
import uuid
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

STORAGE_KEY = "nomadvault_chat"


class ChatStore:
    """Chat history persisted to ``<directory>/nomadvault_chat.json``."""

    def __init__(self, directory: str | Path) -> None:
        self.path = Path(directory) / f"{STORAGE_KEY}.json"

    def load(self) -> list[dict[str, Any]]:
        """Read the history. A missing or corrupt file is an empty history."""
        if not self.path.exists():
            return []
        try:
            messages = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Chat history unreadable, starting fresh: {e}")
            return []
        return messages if isinstance(messages, list) else []

    def append(self, role: str, text: str) -> dict[str, Any]:
        """Add one message and persist the whole history."""
        message = {
            "id": uuid.uuid4().hex,
            "role": role,
            "text": text,
            "timestamp": int(time.time() * 1000),
        }
        messages = self.load()
        messages.append(message)
        self._write(messages)
        return message

    def clear(self) -> None:
        """Forget the conversation."""
        self.path.unlink(missing_ok=True)

    def _write(self, messages: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(messages, ensure_ascii=False), encoding="utf-8")
