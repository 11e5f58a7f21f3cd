"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum

from .recurrence import ScheduleTemplate


class TaskStatus(Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class Priority(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Recurrence(Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class TaskNotFoundError(LookupError):
    """Raised when a task does not exist for the current user."""

    pass


SNOOZE_HOUR = 9

# Fields a client may change on an existing task
EDITABLE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "start_time",
    "end_time",
    "due_date",
    "is_recurring",
    "recurrence",
    "order",
)


@dataclass
class Task:
    """A task in the inbox, optionally scheduled and recurring."""

    id: str
    title: str
    description: str | None = None
    status: str = TaskStatus.TODO.value
    priority: str = Priority.MEDIUM.value
    start_time: datetime | None = None
    end_time: datetime | None = None
    due_date: datetime | None = None
    is_recurring: bool = False
    recurrence: str | None = None
    order: int | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE.value

    @property
    def is_scheduled(self) -> bool:
        return self.start_time is not None or self.due_date is not None

    def planned_date(self) -> date | None:
        """Day the task is planned for: start time first, then due date."""
        when = self.start_time or self.due_date
        return when.date() if when else None

    def schedule(self) -> ScheduleTemplate:
        """Calendar view of this task."""
        return ScheduleTemplate(
            id=self.id,
            title=self.title,
            start_time=self.start_time,
            due_date=self.due_date,
            end_time=self.end_time,
            status=self.status,
            priority=self.priority,
            is_recurring=self.is_recurring,
            recurrence=self.recurrence,
        )


@dataclass
class TaskGroup:
    """A labelled bucket of tasks in the daily list."""

    label: str
    tasks: list[Task] = field(default_factory=list)


def _parse_choice(enum_cls, value, what: str) -> str:
    if isinstance(value, enum_cls):
        return value.value
    try:
        return enum_cls(str(value).strip().upper()).value
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Invalid {what} '{value}' (expected one of: {choices})") from None


def parse_status(value) -> str:
    return _parse_choice(TaskStatus, value, "status")


def parse_priority(value) -> str:
    return _parse_choice(Priority, value, "priority")


def parse_recurrence(value) -> str:
    return _parse_choice(Recurrence, value, "recurrence")


def to_local_naive(dt: datetime | None) -> datetime | None:
    """Timestamps are naive local time; aware values are converted."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def due_date_for_start(start: datetime) -> datetime:
    """A task started on a day is due by the end of that day."""
    return start.replace(hour=23, minute=59, second=59, microsecond=999000)


def filter_open(tasks: list[Task]) -> list[Task]:
    """Hide completed tasks (default list view)."""
    return [t for t in tasks if not t.is_done]


def sort_for_list(tasks: list[Task]) -> list[Task]:
    """
    Manually ordered tasks first (by position), then newest first.

    Pure function - no I/O.
    """
    by_newest = sorted(tasks, key=lambda t: t.created_at, reverse=True)
    return sorted(by_newest, key=lambda t: (t.order is None, t.order or 0))


def group_by_date(tasks: list[Task], today: date) -> list[TaskGroup]:
    """
    Bucket tasks into Today / Tomorrow / This Week / Later / No Date.

    Overdue tasks are shown under Today. Empty groups are dropped.
    Pure function - no I/O.
    """
    tomorrow = today + timedelta(days=1)
    next_week = today + timedelta(days=7)

    groups = [
        TaskGroup("Today"),
        TaskGroup("Tomorrow"),
        TaskGroup("This Week"),
        TaskGroup("Later"),
        TaskGroup("No Date"),
    ]
    today_g, tomorrow_g, week_g, later_g, none_g = groups

    for task in tasks:
        d = task.planned_date()
        if d is None:
            none_g.tasks.append(task)
        elif d == today:
            today_g.tasks.append(task)
        elif d == tomorrow:
            tomorrow_g.tasks.append(task)
        elif today < d < next_week:
            week_g.tasks.append(task)
        elif d >= next_week:
            later_g.tasks.append(task)
        else:
            today_g.tasks.append(task)

    return [g for g in groups if g.tasks]


def move(task_ids: list[str], old_index: int, new_index: int) -> list[str]:
    """Move one id to a new position (drag and drop)."""
    if not 0 <= old_index < len(task_ids) or not 0 <= new_index < len(task_ids):
        raise ValueError(f"Position out of range (1-{len(task_ids)})")
    ids = list(task_ids)
    ids.insert(new_index, ids.pop(old_index))
    return ids


def order_positions(task_ids) -> dict[str, int]:
    """Map each id to its list position for persisting manual order."""
    if not isinstance(task_ids, list):
        raise ValueError("Invalid taskIds array")
    if len(set(task_ids)) != len(task_ids):
        raise ValueError("Duplicate task ids in reorder request")
    return {task_id: index for index, task_id in enumerate(task_ids)}


def snooze_until(now: datetime, hours: int | None = None, days: int | None = None) -> datetime:
    """
    Compute the new start for a snoozed task.

    Hours are added to now; days move to that day at 09:00.
    """
    if not hours and not days:
        raise ValueError("Snooze needs hours or days")
    when = now
    if hours:
        when = when + timedelta(hours=hours)
    if days:
        when = (when + timedelta(days=days)).replace(
            hour=SNOOZE_HOUR, minute=0, second=0, microsecond=0
        )
    return when


def apply_changes(task: Task, changes: dict, now: datetime | None = None) -> Task:
    """
    Return a copy of the task with a partial update applied.

    Unknown fields and invalid values raise ValueError.
    Pure function - no I/O.
    """
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValueError(f"Unknown task field(s): {', '.join(unknown)}")

    values = dict(changes)
    if "title" in values:
        title = (values["title"] or "").strip()
        if not title:
            raise ValueError("Task title cannot be empty")
        values["title"] = title
    if "status" in values:
        values["status"] = parse_status(values["status"])
    if "priority" in values:
        values["priority"] = parse_priority(values["priority"])
    for key in ("start_time", "end_time", "due_date"):
        if key in values:
            values[key] = to_local_naive(values[key])
    if values.get("recurrence") is not None:
        values["recurrence"] = parse_recurrence(values["recurrence"])
    if "is_recurring" in values:
        values["is_recurring"] = bool(values["is_recurring"])
        if not values["is_recurring"]:
            values["recurrence"] = None

    updated = replace(task, **values)
    if updated.is_recurring and not updated.recurrence:
        updated.recurrence = Recurrence.DAILY.value
    updated.updated_at = now or datetime.now()
    return updated
