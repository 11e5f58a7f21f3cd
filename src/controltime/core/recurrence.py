"""Recurring event expansion - pure date arithmetic, no I/O."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

MAX_OCCURRENCES = 365
DEFAULT_DURATION = timedelta(hours=1)
DUE_DATE_ANCHOR_HOUR = 9

# relativedelta clamps to the last day of shorter months (Jan 31 + 1 month = Feb 29/28)
_CADENCE_STEPS = {
    "DAILY": relativedelta(days=1),
    "WEEKLY": relativedelta(weeks=1),
    "MONTHLY": relativedelta(months=1),
    "YEARLY": relativedelta(years=1),
}


@dataclass
class ScheduleTemplate:
    """The scheduling part of a task, as seen by the calendar."""

    id: str
    title: str
    start_time: datetime | None = None
    due_date: datetime | None = None
    end_time: datetime | None = None
    status: str = "TODO"
    priority: str | None = None
    is_recurring: bool = False
    recurrence: str | None = None


@dataclass
class Occurrence:
    """One concrete, time-bounded instance of a task on the calendar."""

    id: str
    title: str
    start: datetime
    end: datetime
    status: str = "TODO"
    priority: str | None = None
    is_recurring: bool = False
    original_task_id: str | None = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def anchor_for(template: ScheduleTemplate) -> datetime | None:
    """First instant of the series, or None when the task has no schedule."""
    if template.start_time is not None:
        return template.start_time
    if template.due_date is not None:
        return template.due_date.replace(
            hour=DUE_DATE_ANCHOR_HOUR, minute=0, second=0, microsecond=0
        )
    return None


def next_occurrence(current: datetime, recurrence: str | None) -> datetime:
    """Advance one cadence unit. Unknown cadences step daily."""
    step = _CADENCE_STEPS.get(recurrence or "", _CADENCE_STEPS["DAILY"])
    return current + step


def expand(
    template: ScheduleTemplate,
    range_start: datetime,
    range_end: datetime,
) -> list[Occurrence]:
    """
    Produce the occurrences of a template for a display window.

    Pure function - no I/O.

    Non-recurring templates always yield their single occurrence, even when
    it falls outside the window. Recurring series are generated forward from
    the anchor by repeated addition, capped at MAX_OCCURRENCES iterations,
    and filtered to range_start <= start <= range_end.
    """
    anchor = anchor_for(template)
    if anchor is None:
        return []

    if template.end_time is not None:
        duration = template.end_time - anchor
    else:
        duration = DEFAULT_DURATION

    if not template.is_recurring or not template.recurrence:
        return [
            Occurrence(
                id=template.id,
                title=template.title,
                start=anchor,
                end=anchor + duration,
                status=template.status,
                priority=template.priority,
                is_recurring=False,
            )
        ]

    occurrences = []
    current = anchor
    for index in range(MAX_OCCURRENCES):
        if current > range_end:
            break
        if current >= range_start:
            occurrences.append(
                Occurrence(
                    id=f"{template.id}-{index}",
                    title=template.title,
                    start=current,
                    end=current + duration,
                    status=template.status,
                    priority=template.priority,
                    is_recurring=True,
                    original_task_id=template.id,
                )
            )
        current = next_occurrence(current, template.recurrence)

    return occurrences


def expand_all(
    templates: list[ScheduleTemplate],
    range_start: datetime,
    range_end: datetime,
) -> list[Occurrence]:
    """Expand every template and sort all occurrences by start (stable)."""
    occurrences = []
    for template in templates:
        occurrences.extend(expand(template, range_start, range_end))
    return sorted(occurrences, key=lambda o: o.start)


def calendar_window(now: datetime) -> tuple[datetime, datetime]:
    """
    Default calendar range: start of last month through end of the month
    two months ahead.
    """
    first_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    range_start = first_of_month - relativedelta(months=1)
    range_end = first_of_month + relativedelta(months=3) - timedelta(microseconds=1)
    return range_start, range_end
