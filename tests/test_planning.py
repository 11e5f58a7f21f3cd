"""Tests for the daily planning ritual."""

from datetime import datetime

import pytest

from controltime.core.planning import greeting, plan_day, schedule_for_today
from controltime.core.tasks import Task


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 8, 30)


class TestGreeting:
    @pytest.mark.parametrize(
        "hour,expected",
        [(0, "Good morning"), (11, "Good morning"), (12, "Good afternoon"), (16, "Good afternoon"), (17, "Good evening")],
    )
    def test_by_hour(self, hour, expected):
        assert greeting(hour) == expected


class TestPlanDay:
    def test_inbox_and_today(self, now):
        tasks = [
            Task(id="old", title="Old", created_at=datetime(2025, 1, 1)),
            Task(id="new", title="New", created_at=datetime(2025, 1, 14)),
            Task(id="busy", title="Busy", status="IN_PROGRESS", start_time=datetime(2025, 1, 15, 14)),
            Task(id="early", title="Early", status="DONE", start_time=datetime(2025, 1, 15, 7)),
            Task(id="tomorrow", title="Tomorrow", status="DONE", start_time=datetime(2025, 1, 16, 9)),
        ]

        plan = plan_day(tasks, now)

        assert plan.greeting == "Good morning"
        assert [t.id for t in plan.inbox] == ["new", "old"]
        assert [t.id for t in plan.scheduled_today] == ["early", "busy"]

    def test_empty(self, now):
        plan = plan_day([], now)
        assert plan.inbox == []
        assert plan.scheduled_today == []


def test_schedule_for_today(now):
    assert schedule_for_today(now) == datetime(2025, 1, 15, 9, 0)
