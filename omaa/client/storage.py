"""
Client-side key/value storage.

A single JSON file of string values under string keys, read once and
rewritten on every change. Callers own the encoding of their values, the
same way browser localStorage callers do.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from omaa.errors import PersistenceError

logger = logging.getLogger(__name__)

# Persisted keys
CHAT_HISTORY = "omaa_chat_history"
PROVIDER = "omaa_ai_provider"
MODEL_PREFIX = "omaa_model_"
API_KEY_PREFIX = "omaa_api_key_"
SESSION_ID = "omaa_session_id"
TRIAL_COUNT = "omaa_trial_message_count"
TRIAL_START = "omaa_trial_start"
SUBSCRIPTION_CACHE = "omaa_subscription_status"


class LocalStorage:
    """JSON-file backed string store."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self._data: dict[str, str] = self._load()

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Unreadable storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Storage file {self.path} is not a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            return self._read()
        except PersistenceError as e:
            logger.warning("%s — starting with empty storage", e)
            return {}

    def _flush(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2))
        os.replace(tmp, self.path)

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str):
        self._data[key] = str(value)
        self._flush()

    def remove_item(self, key: str):
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> list[str]:
        return list(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data
