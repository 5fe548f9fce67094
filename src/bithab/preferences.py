# src/bithab/preferences.py
import json
import os

from .logger import get_logger

logger = get_logger(__name__)

THEME_KEY = "bitHabTheme"
THEMES = ("light", "dark")


class Preferences:
    """Local, per-device preferences kept in a small JSON file."""

    def __init__(self, path: str):
        self.path = path
        self.data = self._load()

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}

    def _save(self):
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not write preferences to {self.path}: {e}")

    @property
    def theme(self) -> str:
        theme = self.data.get(THEME_KEY)
        return theme if theme in THEMES else "light"

    def toggle_theme(self) -> str:
        self.data[THEME_KEY] = "light" if self.theme == "dark" else "dark"
        self._save()
        return self.data[THEME_KEY]
