"""Tests for the shared workflow layer."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from controltime.adapters.google_oauth import AuthenticationError
from controltime.adapters.sqlite_store import SqliteStore
from controltime.config import Config
from controltime.adapters.json_settings import JsonSettingsStore
from controltime.core.focus import FocusTimer, TimerMode
from controltime.core.settings import AppSettings
from controltime.core.labels import LabelNotFoundError
from controltime.core.tasks import TaskNotFoundError
from controltime.workflows import (
    calendar_occurrences,
    complete_task,
    daily_plan,
    format_task_line,
    get_settings_store,
    get_store,
    list_tasks,
    move_task,
    require_user,
    resolve_label,
    resolve_task_id,
    run_focus_session,
    schedule_today,
    snooze_task,
    update_setting,
)

USER = "user-1"


@pytest.fixture
def store(tmp_path):
    return SqliteStore(tmp_path / "test.db")


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 8, 30)


class FakeScheduler:
    """Runs interval jobs synchronously until shut down."""

    def __init__(self, max_runs=100_000):
        self.jobs = []
        self.running = False
        self.max_runs = max_runs

    def add_job(self, func, trigger, **kwargs):
        self.jobs.append((func, trigger, kwargs))

    def start(self):
        self.running = True
        runs = 0
        while self.running and runs < self.max_runs:
            for func, _, _ in self.jobs:
                func()
            runs += 1

    def shutdown(self, wait=True):
        self.running = False


class TestSetup:
    def test_paths_from_config(self, tmp_path):
        config = Config(database_path=str(tmp_path / "x.db"), settings_file=str(tmp_path / "s.json"))
        assert get_store(config).path == tmp_path / "x.db"
        assert get_settings_store(config).path == tmp_path / "s.json"

    def test_require_user(self):
        provider = MagicMock()
        provider.current_user_id.return_value = "u1"
        assert require_user(provider) == "u1"

    def test_require_user_signed_out(self):
        provider = MagicMock()
        provider.current_user_id.return_value = None
        with pytest.raises(AuthenticationError, match="controltime auth"):
            require_user(provider)


class TestResolveTaskId:
    def test_prefix(self, store):
        task = store.create_task(USER, "A")
        assert resolve_task_id(store, USER, task.id[:6]) == task.id

    def test_missing(self, store):
        with pytest.raises(TaskNotFoundError):
            resolve_task_id(store, USER, "zzz")

    def test_ambiguous(self, store):
        store.create_task(USER, "A")
        store.create_task(USER, "B")
        with pytest.raises(ValueError, match="Ambiguous"):
            resolve_task_id(store, USER, "")


class TestTaskWorkflows:
    def test_complete(self, store):
        task = store.create_task(USER, "A")
        assert complete_task(store, USER, task.id).is_done
        assert list_tasks(store, USER) == []

    def test_list_hides_done_unless_asked(self, store):
        a = store.create_task(USER, "Open")
        b = store.create_task(USER, "Finished")
        complete_task(store, USER, b.id)
        assert [t.id for t in list_tasks(store, USER)] == [a.id]
        assert {t.id for t in list_tasks(store, USER, include_done=True)} == {a.id, b.id}

    def test_snooze_moves_start_and_due(self, store, now):
        task = store.create_task(USER, "A", start_time=datetime(2025, 1, 15, 8))
        snoozed = snooze_task(store, USER, task.id, days=1, now=now)
        assert snoozed.start_time == datetime(2025, 1, 16, 9)
        assert snoozed.due_date == datetime(2025, 1, 16, 9)

    def test_schedule_today(self, store, now):
        task = store.create_task(USER, "A")
        assert schedule_today(store, USER, task.id, now=now).start_time == datetime(2025, 1, 15, 9)

    def test_move_task(self, store):
        a = store.create_task(USER, "A")
        b = store.create_task(USER, "B")
        c = store.create_task(USER, "C")
        store.reorder(USER, [a.id, b.id, c.id])

        new_ids = move_task(store, USER, c.id, 1)

        assert new_ids == [c.id, a.id, b.id]
        assert [t.id for t in list_tasks(store, USER)] == new_ids

    def test_move_task_out_of_range(self, store):
        a = store.create_task(USER, "A")
        with pytest.raises(ValueError, match="1-1"):
            move_task(store, USER, a.id, 2)


class TestLabelsAndSettings:
    def test_resolve_label_by_name_or_prefix(self, store):
        work = store.create_label(USER, "Work")
        assert resolve_label(store, USER, "Work") == work
        assert resolve_label(store, USER, work.id[:6]) == work

    def test_resolve_label_missing(self, store):
        with pytest.raises(LabelNotFoundError):
            resolve_label(store, USER, "Home")

    def test_update_setting_accepts_dashes(self, tmp_path):
        settings_store = JsonSettingsStore(tmp_path / "settings.json")
        assert update_setting(settings_store, "week-start", "sunday").week_start == "sunday"


class TestCalendarOccurrences:
    def test_expands_recurring_tasks(self, store, now):
        standup = store.create_task(USER, "Standup", start_time=datetime(2025, 1, 6, 9))
        store.update_task(USER, standup.id, {"is_recurring": True, "recurrence": "WEEKLY"})
        store.create_task(USER, "Dentist", start_time=datetime(2025, 1, 20, 15))
        store.create_task(USER, "Someday")

        occurrences = calendar_occurrences(store, USER, now)

        standups = [o for o in occurrences if o.original_task_id == standup.id]
        assert standups[0].id == f"{standup.id}-0"
        # Window runs Dec 1 through Mar 31
        assert standups[-1].start == datetime(2025, 3, 31, 9)
        assert [o.title for o in occurrences].count("Dentist") == 1
        assert "Someday" not in [o.title for o in occurrences]
        assert occurrences == sorted(occurrences, key=lambda o: o.start)

    def test_aware_and_naive_tasks_mix(self, store, now):
        store.create_task(USER, "Naive", start_time=datetime(2025, 1, 15, 11))
        store.create_task(USER, "Aware", start_time=datetime(2025, 1, 15, 10, tzinfo=timezone.utc))

        titles = [o.title for o in calendar_occurrences(store, USER, now)]
        plan = daily_plan(store, USER, datetime(2025, 1, 15, 12))

        assert sorted(titles) == ["Aware", "Naive"]
        assert len(plan.inbox) == 2


class TestFormatting:
    def test_task_line(self, store):
        task = store.create_task(USER, "Review", start_time=datetime(2025, 1, 15, 14), priority="HIGH")
        line = format_task_line(task, AppSettings())
        assert line.startswith(task.id[:8])
        assert "[!!!] Review (15/01/2025 2:00 PM)" in line


class TestRunFocusSession:
    def test_stops_after_requested_sessions(self):
        timer = FocusTimer()
        timer.set_durations(1, 1, 1)
        ticks = []
        completed = []

        run_focus_session(
            timer,
            on_tick=lambda t: ticks.append(t.time_left),
            on_complete=lambda mode, t: completed.append(mode),
            focus_sessions=2,
            scheduler=FakeScheduler(),
        )

        assert completed == [TimerMode.FOCUS, TimerMode.SHORT_BREAK, TimerMode.FOCUS]
        assert timer.sessions == 2
        assert len(ticks) == 180
        assert not timer.is_running

    def test_registers_interval_job(self):
        scheduler = FakeScheduler(max_runs=1)
        timer = FocusTimer()

        run_focus_session(timer, lambda t: None, lambda m, t: None, scheduler=scheduler)

        func, trigger, kwargs = scheduler.jobs[0]
        assert kwargs["id"] == "focus_tick"
        assert trigger.interval.total_seconds() == 1
        assert timer.time_left == 25 * 60 - 1
