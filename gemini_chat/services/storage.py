"""Local key/value store – the server-side stand-in for browser localStorage.

Every value is an opaque string stored under a fixed key in one JSON file.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

STATS_KEY = "conversationStats"
THEME_KEY = "theme"
THEMES = ("dark", "light")


class KeyValueStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Could not read state file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.error("State file %s does not hold an object, ignoring it", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self.path)


class ThemeStore:
    """Dark/light preference; unset means "follow the system"."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get(self) -> Optional[str]:
        theme = self.store.get_item(THEME_KEY)
        return theme if theme in THEMES else None

    def set(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r}")
        self.store.set_item(THEME_KEY, theme)
        return theme
