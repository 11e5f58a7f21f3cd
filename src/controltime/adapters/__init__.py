"""Adapters - I/O implementations of ports."""

from .sqlite_store import SqliteStore
from .json_settings import JsonSettingsStore
from .google_oauth import GoogleSessionProvider, AuthenticationError

__all__ = [
    "SqliteStore",
    "JsonSettingsStore",
    "GoogleSessionProvider",
    "AuthenticationError",
]
