"""Settings storage interface."""

from typing import Protocol

from controltime.core.settings import AppSettings


class SettingsStore(Protocol):
    """Interface for loading and saving user settings."""

    def load(self) -> AppSettings:
        """Saved settings merged over defaults."""
        ...

    def update(self, changes: dict) -> AppSettings:
        """Apply a partial update, save, and return the result."""
        ...
