"""
Local Store
===========
String-keyed, string-valued slot store with the semantics of browser
localStorage, persisted as a single JSON object on disk.

    store = LocalStore("var/local_store.json")
    store.set_item("sias-deploy-status", "[...]")
    store.get_item("sias-deploy-status")   # → "[...]" (also after a restart)

Persistence:
    - The whole file is rewritten on every set/remove.
    - path=None keeps everything in memory (used by tests).
    - An unreadable or corrupt file loads as an empty store.
    - Write failures are logged and the in-memory value is kept.
"""
import json
import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class LocalStore:

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self._items: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Local store %s unreadable, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Local store %s is not an object, starting empty", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        if not self.path:
            return
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._items, f)
        except OSError as e:
            logger.error("Failed to persist local store %s: %s", self.path, e)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()

    def clear(self) -> None:
        self._items.clear()
        self._flush()

    def __len__(self) -> int:
        return len(self._items)
