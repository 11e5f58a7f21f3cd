"""JSON file settings storage adapter."""

import json
import logging
from pathlib import Path

from controltime.core.settings import AppSettings, merge_settings, settings_from_dict

logger = logging.getLogger(__name__)


class JsonSettingsStore:
    """
    File-based settings storage.

    Implements SettingsStore protocol. Saved keys are merged over defaults.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load(self) -> AppSettings:
        if not self.path.exists():
            return AppSettings()
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        return settings_from_dict(data)

    def update(self, changes: dict) -> AppSettings:
        settings = merge_settings(self.load(), changes)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(settings.to_dict(), indent=2))
        logger.info(f"Settings updated: {', '.join(sorted(changes))}")
        return settings
