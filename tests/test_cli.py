"""Tests for the click CLI."""

import json
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from controltime.adapters.sqlite_store import SqliteStore
from controltime.cli import main
from controltime.config import Config

USER = "user-1"


@pytest.fixture
def config(tmp_path):
    return Config(
        database_path=str(tmp_path / "test.db"),
        settings_file=str(tmp_path / "settings.json"),
    )


@pytest.fixture
def store(config):
    return SqliteStore(config.database)


@pytest.fixture
def provider():
    p = MagicMock()
    p.current_user_id.return_value = USER
    return p


@pytest.fixture
def run(config, provider):
    runner = CliRunner()

    def _run(*args, input=None):
        with patch("controltime.cli.load_config", return_value=config), patch(
            "controltime.cli.get_session_provider", return_value=provider
        ):
            return runner.invoke(main, list(args), input=input)

    return _run


class TestAuthRequired:
    def test_signed_out(self, run, provider):
        provider.current_user_id.return_value = None
        result = run("tasks")
        assert result.exit_code == 1
        assert "Error: Not signed in" in result.output


class TestTaskCommands:
    def test_add_and_list(self, run, store):
        result = run("add", "Write report", "--priority", "high")
        assert result.exit_code == 0, result.output
        assert "Write report" in result.output

        result = run("tasks")
        assert "### No Date (1)" in result.output
        assert "[!!!] Write report" in result.output

    def test_add_with_date(self, run, store):
        result = run("add", "Dentist", "--when", "2025-03-04 15:30")
        assert result.exit_code == 0, result.output
        (task,) = store.list_tasks(USER)
        assert task.start_time == datetime(2025, 3, 4, 15, 30)

    def test_add_bad_date(self, run):
        result = run("add", "Dentist", "--when", "someday soon")
        assert result.exit_code != 0
        assert "Could not understand" in result.output

    def test_empty_list(self, run):
        assert "All clear" in run("tasks").output

    def test_tasks_json(self, run, store):
        store.create_task(USER, "A")
        data = json.loads(run("tasks", "--json").output)
        assert data[0]["title"] == "A"
        assert data[0]["status"] == "TODO"

    def test_done_by_prefix(self, run, store):
        task = store.create_task(USER, "A")
        result = run("done", task.id[:8])
        assert result.exit_code == 0
        assert "✓ A" in result.output
        assert store.get_task(USER, task.id).is_done

    def test_done_unknown(self, run):
        result = run("done", "nope")
        assert result.exit_code == 1
        assert "Error: Task not found" in result.output

    def test_edit_repeat(self, run, store):
        task = store.create_task(USER, "Standup", start_time=datetime(2025, 1, 6, 9))
        result = run("edit", task.id, "--repeat", "weekly")
        assert result.exit_code == 0, result.output
        assert store.get_task(USER, task.id).recurrence == "WEEKLY"

        run("edit", task.id, "--repeat", "none")
        assert store.get_task(USER, task.id).is_recurring is False

    def test_edit_repeat_unscheduled_warns(self, run, store):
        task = store.create_task(USER, "Someday")
        result = run("edit", task.id, "--repeat", "daily")
        assert result.exit_code == 0, result.output
        assert "no start or due date" in result.output

    def test_edit_nothing(self, run, store):
        task = store.create_task(USER, "A")
        assert "Nothing to change" in run("edit", task.id).output

    def test_delete_confirm(self, run, store):
        task = store.create_task(USER, "Temp")
        result = run("delete", task.id, input="y\n")
        assert "Deleted 'Temp'" in result.output
        assert store.list_tasks(USER) == []

    def test_reorder(self, run, store):
        a = store.create_task(USER, "A")
        b = store.create_task(USER, "B")
        store.reorder(USER, [a.id, b.id])
        result = run("reorder", b.id, "1")
        assert result.exit_code == 0, result.output
        assert store.get_task(USER, b.id).order == 0

    def test_snooze_defaults_to_tomorrow(self, run, store):
        task = store.create_task(USER, "A")
        result = run("snooze", task.id)
        assert result.exit_code == 0, result.output
        assert store.get_task(USER, task.id).start_time.hour == 9


class TestCalendarCommand:
    def test_week_shows_recurring(self, run, store):
        task = store.create_task(USER, "Standup", start_time=datetime(2025, 1, 6, 9))
        store.update_task(USER, task.id, {"is_recurring": True, "recurrence": "DAILY"})

        result = run("calendar", "week", "--date", "2025-01-15")

        assert result.exit_code == 0, result.output
        assert "Jan 13 - 19, 2025" in result.output
        assert result.output.count("Standup") == 7

    def test_timezone_input_keeps_calendar_working(self, run, store):
        store.create_task(USER, "Local", start_time=datetime(2024, 5, 1, 11))
        result = run("add", "Remote call", "--when", "2024-05-01 10:00 UTC")
        assert result.exit_code == 0, result.output
        (remote,) = [t for t in store.list_tasks(USER) if t.title == "Remote call"]
        assert remote.start_time.tzinfo is None

        result = run("calendar", "week", "--date", "2024-05-01")
        assert result.exit_code == 0, result.output
        assert "Remote call" in result.output
        assert "Local" in result.output
        assert run("plan").exit_code == 0
        assert run("inbox").exit_code == 0

    def test_next_week(self, run):
        result = run("calendar", "week", "--date", "2025-01-15", "--next")
        assert "Jan 20 - 26, 2025" in result.output

    def test_prev_month(self, run):
        result = run("calendar", "month", "--date", "2025-01-15", "--prev")
        assert "December 2024" in result.output

    def test_day_view_by_hour(self, run, store):
        store.create_task(USER, "Dentist", start_time=datetime(2025, 1, 15, 15))
        store.create_task(USER, "Standup", start_time=datetime(2025, 1, 15, 9, 30))

        result = run("calendar", "day", "--date", "2025-01-15")

        lines = result.output.splitlines()
        assert "Wednesday, January 15, 2025" in lines[0]
        assert " 9:00 AM |" in lines
        assert " 3:00 PM |" in lines
        assert lines.index(" 9:00 AM |") < lines.index(" 3:00 PM |")
        assert "Standup" in lines[lines.index(" 9:00 AM |") + 1]

    def test_empty_day(self, run):
        assert "No events." in run("calendar", "day", "--date", "2025-01-15").output

    def test_day_json(self, run, store):
        store.create_task(USER, "Dentist", start_time=datetime(2025, 1, 15, 15))
        data = json.loads(run("calendar", "day", "--date", "2025-01-15", "--json").output)
        assert [o["title"] for o in data] == ["Dentist"]
        assert data[0]["end"] == "2025-01-15T16:00:00"


class TestLabelCommands:
    def test_add_list_delete(self, run, store):
        assert run("labels", "add", "Work", "--color", "#3B82F6").exit_code == 0
        assert "#3b82f6  Work" in run("labels", "list").output
        assert "Deleted label 'Work'" in run("labels", "delete", "Work").output
        assert store.list_labels(USER) == []

    def test_bad_color(self, run):
        result = run("labels", "add", "Work", "--color", "blue")
        assert result.exit_code == 1
        assert "Invalid color" in result.output


class TestSettingsCommands:
    def test_set_and_show(self, run):
        assert run("settings", "set", "time-format", "24h").exit_code == 0
        assert "24h" in run("settings", "show").output

    def test_invalid(self, run):
        result = run("settings", "set", "week-start", "wednesday")
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestRituals:
    def test_plan_schedules_task(self, run, store):
        task = store.create_task(USER, "Inbox item")
        result = run("plan", "--schedule", task.id[:8])
        assert result.exit_code == 0, result.output
        assert "### Today (1 scheduled)" in result.output
        assert store.get_task(USER, task.id).start_time.hour == 9

    def test_stats_json(self, run, store):
        task = store.create_task(USER, "A")
        store.create_task(USER, "B")
        store.update_task(USER, task.id, {"status": "DONE"})
        data = json.loads(run("stats", "--json").output)
        assert data["completed"] == 1
        assert data["completion_rate"] == 50

    @patch("controltime.cli.run_focus_session")
    def test_focus_passes_durations(self, mock_run, run):
        result = run("focus", "--minutes", "50", "--short", "10", "--sessions", "2")
        assert result.exit_code == 0, result.output
        timer = mock_run.call_args.args[0]
        assert timer.time_left == 50 * 60
        assert mock_run.call_args.kwargs["focus_sessions"] == 2

    def test_focus_rejects_long_session(self, run):
        assert run("focus", "--minutes", "90").exit_code != 0

    def test_focus_tick_shows_progress(self, run):
        def fake_run(timer, on_tick, on_complete, focus_sessions=1):
            timer.is_running = True
            for _ in range(15):
                timer.tick()
            on_tick(timer)

        with patch("controltime.cli.run_focus_session", side_effect=fake_run):
            result = run("focus", "--minutes", "1")

        assert result.exit_code == 0, result.output
        assert "00:45" in result.output
        assert "25%" in result.output
