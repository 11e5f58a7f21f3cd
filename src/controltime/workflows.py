"""Shared workflow layer between CLI and Telegram.

Each function wires adapters to the pure core: load from the store, apply
domain logic, persist, and return domain objects for the caller to format.
"""

import logging
from datetime import date, datetime
from typing import Callable

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .adapters.google_oauth import AuthenticationError, GoogleSessionProvider
from .adapters.json_settings import JsonSettingsStore
from .adapters.sqlite_store import SqliteStore
from .config import Config
from .core.focus import FocusTimer, TimerMode
from .core.planning import DailyPlan, plan_day, schedule_for_today
from .core.recurrence import Occurrence, calendar_window, expand_all
from .core.settings import AppSettings, format_date, format_time
from .core.stats import Stats, compute_stats
from .core.labels import Label, LabelNotFoundError
from .core.tasks import (
    Task,
    TaskNotFoundError,
    TaskStatus,
    filter_open,
    move,
    snooze_until,
    sort_for_list,
)
from .ports import LabelRepository, SessionProvider, SettingsStore, TaskRepository

logger = logging.getLogger(__name__)

PRIORITY_MARKERS = {"HIGH": "!!!", "MEDIUM": "!! ", "LOW": "!  "}
SHORT_ID = 8


def get_store(config: Config) -> SqliteStore:
    return SqliteStore(config.database)


def get_settings_store(config: Config) -> JsonSettingsStore:
    return JsonSettingsStore(config.settings_path)


def get_session_provider(config: Config) -> GoogleSessionProvider:
    return GoogleSessionProvider(config)


def require_user(provider: SessionProvider) -> str:
    """The signed-in user's id. Raises AuthenticationError when signed out."""
    user_id = provider.current_user_id()
    if not user_id:
        raise AuthenticationError("Not signed in. Run 'controltime auth' first.")
    return user_id


# ============== Tasks ==============


def list_tasks(store: TaskRepository, user_id: str, include_done: bool = False) -> list[Task]:
    """Tasks in display order (manual order, then newest first)."""
    tasks = store.list_tasks(user_id)
    return sort_for_list(tasks if include_done else filter_open(tasks))


def resolve_task_id(store: TaskRepository, user_id: str, prefix: str) -> str:
    """Expand a (possibly shortened) task id to the full id."""
    matches = [
        t.id for t in store.list_tasks(user_id) if t.id.startswith(prefix)
    ]
    if not matches:
        raise TaskNotFoundError(f"Task not found: {prefix}")
    if len(matches) > 1:
        raise ValueError(f"Ambiguous task id '{prefix}' matches {len(matches)} tasks")
    return matches[0]


def add_task(
    store: TaskRepository,
    user_id: str,
    title: str,
    description: str | None = None,
    when: datetime | None = None,
    priority: str = "MEDIUM",
) -> Task:
    task = store.create_task(
        user_id, title, description=description, start_time=when, priority=priority
    )
    logger.info(f"Added task '{task.title}'")
    return task


def complete_task(store: TaskRepository, user_id: str, task_id: str) -> Task:
    return store.update_task(user_id, task_id, {"status": TaskStatus.DONE.value})


def snooze_task(
    store: TaskRepository,
    user_id: str,
    task_id: str,
    hours: int | None = None,
    days: int | None = None,
    now: datetime | None = None,
) -> Task:
    """Push a task later; both start time and due date move."""
    when = snooze_until(now or datetime.now(), hours=hours, days=days)
    return store.update_task(user_id, task_id, {"start_time": when, "due_date": when})


def schedule_today(
    store: TaskRepository, user_id: str, task_id: str, now: datetime | None = None
) -> Task:
    """Pull an inbox task onto today's schedule at 09:00."""
    when = schedule_for_today(now or datetime.now())
    return store.update_task(user_id, task_id, {"start_time": when})


def move_task(store: TaskRepository, user_id: str, task_id: str, position: int) -> list[str]:
    """Move a task to a 1-based position in the open list and persist the order."""
    ids = [t.id for t in list_tasks(store, user_id)]
    if task_id not in ids:
        raise TaskNotFoundError(f"Task not found in open list: {task_id}")
    new_ids = move(ids, ids.index(task_id), position - 1)
    store.reorder(user_id, new_ids)
    return new_ids


# ============== Labels and settings ==============


def resolve_label(store: LabelRepository, user_id: str, ref: str) -> Label:
    """Find a label by exact name or id prefix."""
    labels = store.list_labels(user_id)
    by_name = [label for label in labels if label.name == ref]
    if by_name:
        return by_name[0]
    matches = [label for label in labels if label.id.startswith(ref)]
    if not matches:
        raise LabelNotFoundError(f"Label not found: {ref}")
    if len(matches) > 1:
        raise ValueError(f"Ambiguous label '{ref}' matches {len(matches)} labels")
    return matches[0]


def update_setting(store: SettingsStore, key: str, value: str) -> AppSettings:
    """Change one setting; dashed keys (time-format) are accepted."""
    return store.update({key.strip().replace("-", "_"): value})


# ============== Calendar, planning, stats ==============


def calendar_occurrences(
    store: TaskRepository, user_id: str, now: datetime | None = None
) -> list[Occurrence]:
    """All occurrences in the default calendar window, sorted by start."""
    range_start, range_end = calendar_window(now or datetime.now())
    templates = [t.schedule() for t in store.calendar_tasks(user_id)]
    occurrences = expand_all(templates, range_start, range_end)
    logger.debug(
        f"Expanded {len(templates)} tasks into {len(occurrences)} occurrences "
        f"({range_start:%Y-%m-%d} to {range_end:%Y-%m-%d})"
    )
    return occurrences


def daily_plan(store: TaskRepository, user_id: str, now: datetime | None = None) -> DailyPlan:
    return plan_day(store.list_tasks(user_id), now or datetime.now())


def task_stats(store: TaskRepository, user_id: str, now: datetime | None = None) -> Stats:
    return compute_stats(store.list_tasks(user_id), now or datetime.now())


# ============== Formatting ==============


def format_task_line(task: Task, settings: AppSettings) -> str:
    """One-line task summary for display."""
    marker = PRIORITY_MARKERS.get(task.priority, "   ")
    when = ""
    if task.start_time:
        when = f" ({format_date(task.start_time, settings)} {format_time(task.start_time, settings)})"
    elif task.due_date:
        when = f" (due {format_date(task.due_date, settings)})"
    repeat = f" [{task.recurrence.lower()}]" if task.is_recurring and task.recurrence else ""
    done = " ✓" if task.is_done else ""
    return f"{task.id[:SHORT_ID]} [{marker}] {task.title}{when}{repeat}{done}"


def format_occurrence_line(occurrence: Occurrence, settings: AppSettings) -> str:
    start = format_time(occurrence.start, settings)
    end = format_time(occurrence.end, settings)
    repeat = " ↻" if occurrence.is_recurring else ""
    return f"{start} - {end}  {occurrence.title}{repeat}"


def group_occurrences_by_day(occurrences: list[Occurrence]) -> dict[date, list[Occurrence]]:
    days: dict[date, list[Occurrence]] = {}
    for o in occurrences:
        days.setdefault(o.start.date(), []).append(o)
    return days


# ============== Focus ==============


def run_focus_session(
    timer: FocusTimer,
    on_tick: Callable[[FocusTimer], None],
    on_complete: Callable[[TimerMode, FocusTimer], None],
    focus_sessions: int = 1,
    scheduler=None,
) -> FocusTimer:
    """
    Drive the timer from a one-second interval job until the requested
    number of focus sessions has completed. Breaks start automatically.
    """
    scheduler = scheduler or BlockingScheduler()
    target = timer.sessions + focus_sessions

    def _tick() -> None:
        completed = timer.tick()
        on_tick(timer)
        if completed is None:
            return
        on_complete(completed, timer)
        if timer.sessions >= target:
            scheduler.shutdown(wait=False)
            return
        timer.toggle()

    timer.is_running = True
    scheduler.add_job(_tick, IntervalTrigger(seconds=1), id="focus_tick", max_instances=1)
    scheduler.start()
    return timer
