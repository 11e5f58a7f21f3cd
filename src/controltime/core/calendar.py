"""Pure calendar view logic - no I/O dependencies."""

from datetime import date, datetime, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta

from .recurrence import Occurrence


class CalendarView(Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def start_of_week(d: date, week_starts_on: int = 1) -> date:
    """First day of the week containing d (0 = Sunday, 1 = Monday)."""
    sunday_based = (d.weekday() + 1) % 7
    return d - timedelta(days=(sunday_based - week_starts_on) % 7)


def end_of_week(d: date, week_starts_on: int = 1) -> date:
    return start_of_week(d, week_starts_on) + timedelta(days=6)


def _days_between(start: date, end: date) -> list[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def visible_days(view: CalendarView, current: date, week_starts_on: int = 1) -> list[date]:
    """
    Days shown by a view.

    Month views are padded to whole weeks so they render as a grid.
    """
    if view == CalendarView.DAY:
        return [current]
    if view == CalendarView.WEEK:
        return _days_between(
            start_of_week(current, week_starts_on), end_of_week(current, week_starts_on)
        )
    month_start = current.replace(day=1)
    month_end = month_start + relativedelta(months=1) - timedelta(days=1)
    return _days_between(
        start_of_week(month_start, week_starts_on), end_of_week(month_end, week_starts_on)
    )


def navigate(view: CalendarView, current: date, direction: str) -> date:
    """Move the view by one unit: prev, next or today."""
    if direction == "today":
        return date.today()
    if direction not in ("prev", "next"):
        raise ValueError(f"Invalid direction '{direction}'")
    sign = 1 if direction == "next" else -1
    if view == CalendarView.MONTH:
        return current + relativedelta(months=sign)
    if view == CalendarView.WEEK:
        return current + timedelta(weeks=sign)
    return current + timedelta(days=sign)


def occurrences_on(occurrences: list[Occurrence], day: date) -> list[Occurrence]:
    """Occurrences starting on a given day."""
    return [o for o in occurrences if o.start.date() == day]


def occurrences_at_hour(occurrences: list[Occurrence], day: date, hour: int) -> list[Occurrence]:
    """Occurrences starting within one hour slot of a day."""
    return [o for o in occurrences if o.start.date() == day and o.start.hour == hour]


def range_label(view: CalendarView, current: date, week_starts_on: int = 1) -> str:
    """Header text for the visible range."""
    if view == CalendarView.MONTH:
        return current.strftime("%B %Y")
    if view == CalendarView.WEEK:
        start = start_of_week(current, week_starts_on)
        end = end_of_week(current, week_starts_on)
        if start.month == end.month:
            return f"{start.strftime('%b')} {start.day} - {end.day}, {end.year}"
        return f"{start.strftime('%b')} {start.day} - {end.strftime('%b')} {end.day}, {end.year}"
    return f"{current.strftime('%A, %B')} {current.day}, {current.year}"


def window_for(view: CalendarView, current: date, week_starts_on: int = 1) -> tuple[datetime, datetime]:
    """Instant range covering the visible days of a view."""
    days = visible_days(view, current, week_starts_on)
    start = datetime.combine(days[0], datetime.min.time())
    end = datetime.combine(days[-1], datetime.max.time())
    return start, end
