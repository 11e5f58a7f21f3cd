"""Functional core - pure business logic with no I/O."""

from .recurrence import Occurrence, ScheduleTemplate, calendar_window, expand, expand_all
from .tasks import Task, TaskGroup, TaskNotFoundError, filter_open, group_by_date, sort_for_list
from .labels import Label, LabelNotFoundError, sort_labels
from .calendar import CalendarView, visible_days, range_label
from .focus import FocusTimer, TimerMode
from .planning import DailyPlan, plan_day
from .stats import Stats, compute_stats
from .settings import AppSettings, format_date, format_time, week_start_day

__all__ = [
    # Recurrence
    "Occurrence",
    "ScheduleTemplate",
    "calendar_window",
    "expand",
    "expand_all",
    # Tasks
    "Task",
    "TaskGroup",
    "TaskNotFoundError",
    "filter_open",
    "group_by_date",
    "sort_for_list",
    # Labels
    "Label",
    "LabelNotFoundError",
    "sort_labels",
    # Calendar
    "CalendarView",
    "visible_days",
    "range_label",
    # Focus
    "FocusTimer",
    "TimerMode",
    # Planning
    "DailyPlan",
    "plan_day",
    # Stats
    "Stats",
    "compute_stats",
    # Settings
    "AppSettings",
    "format_date",
    "format_time",
    "week_start_day",
]
