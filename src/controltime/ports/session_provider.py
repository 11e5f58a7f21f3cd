"""Authentication session interface."""

from typing import Protocol


class SessionProvider(Protocol):
    """Yields the signed-in user's id, or None when signed out."""

    def current_user_id(self) -> str | None:
        ...
