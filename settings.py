"""
settings.py

JSON-backed configuration (orjson) with debounced saves. The same file keeps
the few values the engine persists across restarts.

Public API:
- DEFAULT_CONFIG (dict)
- INVERTED_OVERRIDE (str)  # settings key of the user inversion override
- ConfigManager(path, defaults)
    - data (dict)
    - get(key, default=None) / set(key, value) / clear(key)
    - save() / flush() / debounce_save(delay)
"""

from __future__ import annotations

import logging
from threading import Lock, Timer
from typing import Any, Dict, Optional

import orjson

logger = logging.getLogger(__name__)

INVERTED_OVERRIDE = "redshift.inverted.override"

DEFAULT_CONFIG: Dict[str, object] = {
    "NIGHT_TEMP": 2800,
    "DAY_TEMP": 6500,
    "NIGHT_START": "21:00",
    "NIGHT_END": "07:00",
    "TRANSITION": "1h",
    "INVERT_AT_NIGHT": False,

    # Foreground apps that suspend color adjustment (exe names, no extension)
    "EXCLUDED_APPS": [],
    "FILTER_POLL_INTERVAL": 1.0,
    "DISPLAY_POLL_INTERVAL": 2.0,

    "HOTKEY_TOGGLE_INVERT": "f8",
    "LOG_LEVEL": "INFO",
}


class ConfigManager:
    def __init__(self, path: str, defaults: Dict[str, object]):
        self.path = path
        self.defaults = defaults

        self._lock = Lock()
        self._timer: Optional[Timer] = None

        self.data = self._load()

    def _load(self) -> dict:
        try:
            with open(self.path, "rb") as f:
                data = orjson.loads(f.read())
        except FileNotFoundError:
            data = {}
        except orjson.JSONDecodeError:
            logger.warning("ignoring unreadable config file %s", self.path)
            data = {}

        if not isinstance(data, dict):
            logger.warning("ignoring config file %s: top level is not an object", self.path)
            data = {}

        for key, value in self.defaults.items():
            data.setdefault(key, value)

        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.debounce_save()

    def clear(self, key: str) -> None:
        if self.data.pop(key, None) is not None:
            self.debounce_save()

    def save(self) -> None:
        with self._lock:
            payload = orjson.dumps(self.data, option=orjson.OPT_INDENT_2)
            with open(self.path, "wb") as f:
                f.write(payload)

    def flush(self) -> None:
        """Write pending changes now."""
        if self._timer:
            self._timer.cancel()
            self._timer = None
            self.save()

    def debounce_save(self, delay: float = 0.5) -> None:
        if self._timer:
            self._timer.cancel()

        self._timer = Timer(delay, self.save)
        self._timer.daemon = True
        self._timer.start()
