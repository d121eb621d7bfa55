from __future__ import annotations

"""User preferences handed to the presentation layer at startup.

The settings are stored as a list of dictionaries to preserve order.
Each dictionary contains ``key``, ``value`` and ``type`` entries.  Every
call to :meth:`Settings.set_value` writes the file straight away.
"""

from enum import Enum
from pathlib import Path
import json
import logging
from typing import Any, Callable, List, Dict

from gymlog import DEFAULT_DATA_DIR

# Path to the JSON file where settings are persisted.
SETTINGS_PATH = DEFAULT_DATA_DIR / "settings.json"


class ThemePreference(str, Enum):
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"

    @property
    def color_scheme(self) -> str | None:
        """Scheme to force, ``None`` to follow the platform."""
        if self is ThemePreference.SYSTEM:
            return None
        return self.value


# Default settings to initialize the file on first run.
DEFAULT_SETTINGS: List[Dict[str, Any]] = [
    {"key": "theme_preference", "value": ThemePreference.SYSTEM.value, "type": "choice"},
    {"key": "prefers_biometrics", "value": True, "type": "bool"},
]


class Settings:
    """Ordered key/value preferences backed by a JSON file."""

    def __init__(self, path: Path = SETTINGS_PATH) -> None:
        self.path = Path(path)
        self._items: List[Dict[str, Any]] | None = None
        self._listeners: List[Callable[[str, Any], None]] = []

    def load(self) -> List[Dict[str, Any]]:
        """Load settings from :attr:`path` or create defaults."""
        if self.path.exists():
            try:
                with self.path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
                    if isinstance(data, list):
                        return data
            except (OSError, ValueError):
                logging.warning("Settings file unreadable, using defaults: %s", self.path)
        defaults = [dict(item) for item in DEFAULT_SETTINGS]
        self.save(defaults)
        return defaults

    def save(self, settings: List[Dict[str, Any]]) -> None:
        """Persist ``settings`` to :attr:`path`."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as fh:
                json.dump(settings, fh)
        except OSError:
            logging.exception("Saving settings failed: %s", self.path)

    @property
    def items(self) -> List[Dict[str, Any]]:
        """Return the cached settings list, loading from disk if needed."""
        if self._items is None:
            self._items = self.load()
        return self._items

    def get_value(self, key: str, default: Any = None) -> Any:
        """Fetch the value associated with ``key``."""
        for item in self.items:
            if item.get("key") == key:
                return item.get("value")
        return default

    def set_value(self, key: str, value: Any) -> None:
        """Update ``key`` with ``value``, persist it and notify listeners."""
        settings = self.items
        for item in settings:
            if item.get("key") == key:
                item["value"] = value
                break
        else:
            settings.append({"key": key, "value": value, "type": type(value).__name__})
        self.save(settings)
        for listener in list(self._listeners):
            listener(key, value)

    def add_listener(self, callback: Callable[[str, Any], None]) -> None:
        """Call ``callback(key, value)`` after each change."""
        self._listeners.append(callback)

    @property
    def theme(self) -> ThemePreference:
        value = self.get_value("theme_preference", ThemePreference.SYSTEM.value)
        try:
            return ThemePreference(value)
        except ValueError:
            return ThemePreference.SYSTEM

    @theme.setter
    def theme(self, preference: ThemePreference | str) -> None:
        self.set_value("theme_preference", ThemePreference(preference).value)

    @property
    def prefers_biometrics(self) -> bool:
        return bool(self.get_value("prefers_biometrics", True))

    @prefers_biometrics.setter
    def prefers_biometrics(self, enabled: bool) -> None:
        self.set_value("prefers_biometrics", bool(enabled))
