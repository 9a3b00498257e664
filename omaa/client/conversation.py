"""
Conversation store: the ordered, capped chat history.

Every append persists and trims to the most recent `max_messages`
(oldest entries dropped silently). pop_last() undoes the most recent
append, including any entry that append pushed out of the window.
"""

from __future__ import annotations

import json
import logging

from omaa.client.storage import CHAT_HISTORY, LocalStorage
from omaa.errors import PersistenceError
from omaa.models import Message, Role

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 20


class ConversationStore:
    """Capped role/content history persisted in client storage."""

    def __init__(self, storage: LocalStorage, max_messages: int = DEFAULT_MAX_MESSAGES):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.storage = storage
        self.max_messages = max_messages
        self._messages: list[Message] = self._load()
        self._evicted: list[Message] = []

    def _decode(self, raw: str) -> list[Message]:
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise PersistenceError("chat history is not a list")
            return [Message.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError(str(e)) from e

    def _load(self) -> list[Message]:
        raw = self.storage.get_item(CHAT_HISTORY)
        if not raw:
            return []
        try:
            messages = self._decode(raw)
        except PersistenceError as e:
            logger.warning("Failed to load chat history, starting fresh: %s", e)
            return []
        return messages[-self.max_messages:]

    def _save(self):
        self.storage.set_item(
            CHAT_HISTORY, json.dumps([m.to_dict() for m in self._messages]),
        )

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, role: Role | str, content: str) -> Message:
        """Add one message, trim to the cap, persist."""
        message = Message(role=Role(role), content=content)
        self._messages.append(message)
        overflow = len(self._messages) - self.max_messages
        if overflow > 0:
            self._evicted = self._messages[:overflow]
            self._messages = self._messages[overflow:]
        else:
            self._evicted = []
        self._save()
        return message

    def pop_last(self) -> Message | None:
        """Remove the most recent message (used to roll back a failed send)."""
        if not self._messages:
            return None
        last = self._messages.pop()
        self._messages = self._evicted + self._messages
        self._evicted = []
        self._save()
        return last

    def clear(self):
        """Empty the history and drop the persisted copy."""
        self._messages = []
        self._evicted = []
        self.storage.remove_item(CHAT_HISTORY)
