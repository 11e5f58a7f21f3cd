"""Productivity statistics - pure logic, no I/O."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .tasks import Priority, Task

RECENT_LIMIT = 5
DAYS = 7


@dataclass
class DailyCount:
    label: str
    completed: int


@dataclass
class Stats:
    """Summary of task activity."""

    total: int
    completed: int
    pending: int
    completion_rate: int
    daily: list[DailyCount]
    priority: dict[str, int]
    recent_completed: list[Task] = field(default_factory=list)
    completed_this_week: int = 0

    @property
    def weekly_total(self) -> int:
        return sum(d.completed for d in self.daily)

    @property
    def busiest_day(self) -> int:
        """Largest daily count, at least 1 (chart scale)."""
        return max([d.completed for d in self.daily] + [1])


def completion_rate(completed: int, total: int) -> int:
    """Whole percent, rounding halves up."""
    if total <= 0:
        return 0
    return int(completed * 100 / total + 0.5)


def compute_stats(tasks: list[Task], now: datetime) -> Stats:
    """
    Compute stats over all of a user's tasks.

    Pure function - no I/O.
    """
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    window_start = today - timedelta(days=DAYS - 1)
    window_end = today + timedelta(days=1)

    done = [t for t in tasks if t.is_done]
    recent = sorted(
        (t for t in done if window_start <= t.updated_at < window_end),
        key=lambda t: t.updated_at,
        reverse=True,
    )

    daily = []
    for i in range(DAYS - 1, -1, -1):
        day = today - timedelta(days=i)
        next_day = day + timedelta(days=1)
        count = sum(1 for t in recent if day <= t.updated_at < next_day)
        daily.append(DailyCount(label=day.strftime("%a"), completed=count))

    # Week starts on Sunday for the "this week" counter
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)

    return Stats(
        total=len(tasks),
        completed=len(done),
        pending=len(tasks) - len(done),
        completion_rate=completion_rate(len(done), len(tasks)),
        daily=daily,
        priority={p.value: sum(1 for t in tasks if t.priority == p.value) for p in Priority},
        recent_completed=recent[:RECENT_LIMIT],
        completed_this_week=sum(1 for t in done if t.updated_at >= week_start),
    )
