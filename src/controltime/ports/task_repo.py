"""Task repository interface."""

from datetime import datetime
from typing import Protocol

from controltime.core.tasks import Task


class TaskRepository(Protocol):
    """Interface for storing a user's tasks in any backend."""

    def list_tasks(self, user_id: str) -> list[Task]:
        """All of a user's tasks, newest first."""
        ...

    def calendar_tasks(self, user_id: str) -> list[Task]:
        """Tasks with a start time or due date, ordered by start time."""
        ...

    def get_task(self, user_id: str, task_id: str) -> Task:
        """Fetch one task. Raises TaskNotFoundError."""
        ...

    def create_task(
        self,
        user_id: str,
        title: str,
        description: str | None = None,
        start_time: datetime | None = None,
        priority: str = "MEDIUM",
    ) -> Task:
        """Create a task in the inbox."""
        ...

    def update_task(self, user_id: str, task_id: str, changes: dict) -> Task:
        """Apply a partial update. Raises TaskNotFoundError / ValueError."""
        ...

    def delete_task(self, user_id: str, task_id: str) -> None:
        """Delete a task. Raises TaskNotFoundError."""
        ...

    def reorder(self, user_id: str, task_ids: list[str]) -> None:
        """Persist manual order; all ids must belong to the user."""
        ...
