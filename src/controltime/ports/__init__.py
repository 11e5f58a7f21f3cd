"""Ports - interfaces/protocols for external dependencies."""

from .task_repo import TaskRepository
from .label_repo import LabelRepository
from .settings_store import SettingsStore
from .session_provider import SessionProvider

__all__ = [
    "TaskRepository",
    "LabelRepository",
    "SettingsStore",
    "SessionProvider",
]
