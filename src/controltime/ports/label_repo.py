"""Label repository interface."""

from typing import Protocol

from controltime.core.labels import Label


class LabelRepository(Protocol):
    """Interface for storing a user's labels."""

    def list_labels(self, user_id: str) -> list[Label]:
        """List labels sorted by name."""
        ...

    def create_label(self, user_id: str, name: str, color: str | None = None) -> Label:
        ...

    def update_label(self, user_id: str, label_id: str, changes: dict) -> Label:
        """Rename or recolor. Raises LabelNotFoundError / ValueError."""
        ...

    def delete_label(self, user_id: str, label_id: str) -> None:
        ...
