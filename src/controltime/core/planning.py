"""Daily planning ritual - pure logic, no I/O."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from .tasks import Task, TaskStatus

PLANNING_HOUR = 9


@dataclass
class DailyPlan:
    """Inbox review plus what is already on today's schedule."""

    greeting: str
    inbox: list[Task]
    scheduled_today: list[Task]


def greeting(hour: int) -> str:
    if hour < 12:
        return "Good morning"
    if hour < 17:
        return "Good afternoon"
    return "Good evening"


def plan_day(tasks: list[Task], now: datetime) -> DailyPlan:
    """
    Assemble the planning view for today.

    Pure function - no I/O.
    """
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1)

    inbox = sorted(
        (t for t in tasks if t.status == TaskStatus.TODO.value),
        key=lambda t: t.created_at,
        reverse=True,
    )
    scheduled = sorted(
        (t for t in tasks if t.start_time is not None and day_start <= t.start_time < day_end),
        key=lambda t: t.start_time,
    )
    return DailyPlan(greeting=greeting(now.hour), inbox=inbox, scheduled_today=scheduled)


def schedule_for_today(now: datetime) -> datetime:
    """Start time used when pulling an inbox task onto today."""
    return now.replace(hour=PLANNING_HOUR, minute=0, second=0, microsecond=0)
