"""Control Time CLI - personal productivity."""

import json
import sys
from datetime import date, datetime, timedelta

import click
from dateutil import parser as date_parser

from .adapters.google_oauth import AuthenticationError, authorize
from .config import Session, configure_logging, load_config
from .core.calendar import (
    CalendarView,
    navigate,
    occurrences_at_hour,
    occurrences_on,
    range_label,
    visible_days,
    window_for,
)
from .core.focus import FocusTimer, TimerMode
from .core.settings import format_date, format_time, week_start_day
from .core.tasks import Priority, Recurrence, TaskStatus, group_by_date, to_local_naive
from .core.recurrence import Occurrence
from .workflows import (
    add_task,
    calendar_occurrences,
    complete_task,
    daily_plan,
    format_occurrence_line,
    format_task_line,
    get_session_provider,
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
    task_stats,
    update_setting,
)

PRIORITY_CHOICE = click.Choice([p.value for p in Priority], case_sensitive=False)
STATUS_CHOICE = click.Choice([s.value for s in TaskStatus], case_sensitive=False)
REPEAT_CHOICE = click.Choice([r.value for r in Recurrence] + ["NONE"], case_sensitive=False)


def _fail(error) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _open():
    """Store and signed-in user id, or exit with an error."""
    config = load_config()
    try:
        user_id = require_user(get_session_provider(config))
    except AuthenticationError as e:
        _fail(e)
    return get_store(config), user_id


def _settings():
    return get_settings_store(load_config()).load()


def _parse_when(value: str | None) -> datetime | None:
    """Parse 'today', 'tomorrow' or a date/time; bare dates default to 09:00."""
    if value is None:
        return None
    nine = datetime.now().replace(hour=9, minute=0, second=0, microsecond=0)
    text = value.strip().lower()
    if text == "today":
        return nine
    if text == "tomorrow":
        return nine + timedelta(days=1)
    try:
        parsed = date_parser.parse(value, default=nine)
    except (ValueError, OverflowError):
        raise click.BadParameter(f"Could not understand date/time '{value}'")
    # "10:00 UTC" and "+02:00" inputs are stored as naive local time
    return to_local_naive(parsed)


def _task_json(task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "start_time": task.start_time.isoformat() if task.start_time else None,
        "end_time": task.end_time.isoformat() if task.end_time else None,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "is_recurring": task.is_recurring,
        "recurrence": task.recurrence,
        "order": task.order,
    }


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Control Time - tasks, calendar and focus."""
    configure_logging("DEBUG" if debug else load_config().log_level)


# ============== Account ==============


@main.command()
def auth():
    """Sign in with Google."""
    config = load_config()
    try:
        session = authorize(config)
    except AuthenticationError as e:
        _fail(e)
    get_store(config).ensure_user(session.user_id, session.email, session.name)


@main.command()
def logout():
    """Sign out and forget the saved session."""
    if Session.clear():
        click.echo("Signed out.")
    else:
        click.echo("Not signed in.")


@main.command()
def whoami():
    """Show the signed-in account."""
    store, user_id = _open()
    session = Session.load()
    since = store.user_created_at(user_id)
    click.echo(f"{session.name or '(no name)'} <{session.email or 'unknown'}>")
    if since:
        click.echo(f"Member since {since.strftime('%B %Y')}")


# ============== Tasks ==============


@main.command()
@click.argument("title")
@click.option("--when", "-w", default=None, help="Start: today, tomorrow, or a date/time")
@click.option("--description", "-d", default=None, help="Longer description")
@click.option("--priority", "-p", type=PRIORITY_CHOICE, default="MEDIUM", show_default=True)
def add(title: str, when: str | None, description: str | None, priority: str):
    """Create a task."""
    store, user_id = _open()
    try:
        task = add_task(store, user_id, title, description, _parse_when(when), priority.upper())
    except ValueError as e:
        _fail(e)
    click.echo(f"Created {format_task_line(task, _settings())}")


@main.command()
@click.option("--all", "include_done", is_flag=True, help="Include completed tasks")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tasks(include_done: bool, as_json: bool):
    """List tasks grouped by day."""
    store, user_id = _open()
    items = list_tasks(store, user_id, include_done=include_done)

    if as_json:
        click.echo(json.dumps([_task_json(t) for t in items], indent=2))
        return

    if not items:
        click.echo("All clear! Create a task to get started.")
        return

    settings = _settings()
    for i, group in enumerate(group_by_date(items, date.today())):
        if i:
            click.echo()
        click.echo(f"### {group.label} ({len(group.tasks)})")
        for task in group.tasks:
            click.echo(f"  {format_task_line(task, settings)}")


@main.command()
def inbox():
    """List tasks waiting to be done."""
    store, user_id = _open()
    plan = daily_plan(store, user_id)
    if not plan.inbox:
        click.echo("Inbox is empty.")
        return
    settings = _settings()
    for task in plan.inbox:
        click.echo(f"• {format_task_line(task, settings)}")


@main.command()
@click.argument("task_id")
def show(task_id: str):
    """Show task details."""
    store, user_id = _open()
    try:
        task = store.get_task(user_id, resolve_task_id(store, user_id, task_id))
    except (LookupError, ValueError) as e:
        _fail(e)

    settings = _settings()

    def fmt(dt):
        return f"{format_date(dt, settings)} {format_time(dt, settings)}" if dt else "-"

    click.echo(f"{task.title}  ({task.id})")
    if task.description:
        click.echo(f"\n{task.description}\n")
    click.echo(f"  Status:   {task.status}")
    click.echo(f"  Priority: {task.priority}")
    click.echo(f"  Start:    {fmt(task.start_time)}")
    click.echo(f"  End:      {fmt(task.end_time)}")
    click.echo(f"  Due:      {fmt(task.due_date)}")
    click.echo(f"  Repeats:  {task.recurrence if task.is_recurring else 'no'}")


@main.command()
@click.argument("task_id")
@click.option("--title", default=None)
@click.option("--description", "-d", default=None)
@click.option("--priority", "-p", type=PRIORITY_CHOICE, default=None)
@click.option("--status", "-s", type=STATUS_CHOICE, default=None)
@click.option("--start", default=None, help="Start date/time")
@click.option("--end", default=None, help="End date/time")
@click.option("--due", default=None, help="Due date/time")
@click.option("--repeat", type=REPEAT_CHOICE, default=None, help="Recurrence, or NONE")
@click.option("--unschedule", is_flag=True, help="Clear start, end and due")
def edit(task_id, title, description, priority, status, start, end, due, repeat, unschedule):
    """Edit a task."""
    changes = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description or None
    if priority:
        changes["priority"] = priority
    if status:
        changes["status"] = status
    if unschedule:
        changes.update(start_time=None, end_time=None, due_date=None)
    if start is not None:
        changes["start_time"] = _parse_when(start)
    if end is not None:
        changes["end_time"] = _parse_when(end)
    if due is not None:
        changes["due_date"] = _parse_when(due)
    if repeat:
        if repeat.upper() == "NONE":
            changes.update(is_recurring=False, recurrence=None)
        else:
            changes.update(is_recurring=True, recurrence=repeat)

    if not changes:
        click.echo("Nothing to change.")
        return

    store, user_id = _open()
    try:
        task = store.update_task(user_id, resolve_task_id(store, user_id, task_id), changes)
    except (LookupError, ValueError) as e:
        _fail(e)
    click.echo(f"Updated {format_task_line(task, _settings())}")
    if task.is_recurring and not task.is_scheduled:
        click.echo("Note: this task has no start or due date, so it will not repeat on the calendar.")


@main.command()
@click.argument("task_ids", nargs=-1, required=True)
def done(task_ids: tuple[str, ...]):
    """Mark tasks as done."""
    store, user_id = _open()
    settings = _settings()
    for prefix in task_ids:
        try:
            task = complete_task(store, user_id, resolve_task_id(store, user_id, prefix))
        except (LookupError, ValueError) as e:
            _fail(e)
        if settings.sound_effects:
            click.echo("\a", nl=False)
        click.echo(f"✓ {task.title}")


@main.command()
@click.argument("task_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def delete(task_id: str, yes: bool):
    """Delete a task."""
    store, user_id = _open()
    try:
        task = store.get_task(user_id, resolve_task_id(store, user_id, task_id))
        if not yes and not click.confirm(f"Delete '{task.title}'?"):
            return
        store.delete_task(user_id, task.id)
    except (LookupError, ValueError) as e:
        _fail(e)
    click.echo(f"Deleted '{task.title}'")


@main.command()
@click.argument("task_id")
@click.argument("position", type=click.IntRange(min=1))
def reorder(task_id: str, position: int):
    """Move a task to a position in the list (1 = top)."""
    store, user_id = _open()
    try:
        move_task(store, user_id, resolve_task_id(store, user_id, task_id), position)
    except (LookupError, ValueError) as e:
        _fail(e)
    click.echo(f"Moved to position {position}.")


@main.command()
@click.argument("task_id")
@click.option("--hours", type=click.IntRange(min=1), default=None, help="Snooze for N hours")
@click.option("--days", type=click.IntRange(min=1), default=None, help="Snooze to 09:00 in N days")
def snooze(task_id: str, hours: int | None, days: int | None):
    """Push a task later (default: tomorrow 09:00)."""
    if not hours and not days:
        days = 1
    store, user_id = _open()
    try:
        task = snooze_task(store, user_id, resolve_task_id(store, user_id, task_id), hours, days)
    except (LookupError, ValueError) as e:
        _fail(e)
    settings = _settings()
    click.echo(
        f"Snoozed '{task.title}' until "
        f"{format_date(task.start_time, settings)} {format_time(task.start_time, settings)}"
    )


# ============== Calendar ==============


@main.group(invoke_without_command=True)
@click.pass_context
def calendar(ctx):
    """Show the calendar, including recurring tasks."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(calendar_week)


def _navigation_options(f):
    f = click.option("--json", "as_json", is_flag=True, help="Output as JSON")(f)
    f = click.option("--next", "step", flag_value="next", help="Show the following period")(f)
    f = click.option("--prev", "step", flag_value="prev", help="Show the previous period")(f)
    return f


def _show_calendar(
    view: CalendarView, target: str | None, as_json: bool, step: str | None = None
) -> None:
    store, user_id = _open()
    settings = _settings()
    week_starts_on = week_start_day(settings)
    current = _parse_when(target).date() if target else date.today()
    if step:
        current = navigate(view, current, step)

    range_start, range_end = window_for(view, current, week_starts_on)
    occurrences: list[Occurrence] = [
        o
        for o in calendar_occurrences(store, user_id, datetime.combine(current, datetime.min.time()))
        if range_start <= o.start <= range_end
    ]

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "id": o.id,
                        "title": o.title,
                        "start": o.start.isoformat(),
                        "end": o.end.isoformat(),
                        "status": o.status,
                        "priority": o.priority,
                        "is_recurring": o.is_recurring,
                        "original_task_id": o.original_task_id,
                    }
                    for o in occurrences
                ],
                indent=2,
            )
        )
        return

    click.echo(f"## {range_label(view, current, week_starts_on)}\n")
    if view == CalendarView.DAY:
        _show_hours(occurrences, current, settings)
        return

    shown = False
    for day in visible_days(view, current, week_starts_on):
        if view == CalendarView.MONTH and day.month != current.month:
            continue
        day_events = occurrences_on(occurrences, day)
        if not day_events:
            continue
        shown = True
        click.echo(f"### {day.strftime('%A')} {format_date(day, settings)}")
        for o in day_events:
            click.echo(f"  {format_occurrence_line(o, settings)}")
    if not shown:
        click.echo("No events.")


def _show_hours(occurrences: list[Occurrence], day: date, settings) -> None:
    """Hour-by-hour agenda; empty hours are collapsed."""
    if not occurrences_on(occurrences, day):
        click.echo("No events.")
        return
    for hour in range(24):
        slot = occurrences_at_hour(occurrences, day, hour)
        if not slot:
            continue
        label = format_time(datetime.combine(day, datetime.min.time()).replace(hour=hour), settings)
        click.echo(f"{label:>8} |")
        for o in slot:
            click.echo(f"{'':>8} |  {format_occurrence_line(o, settings)}")


@calendar.command("day")
@click.option("--date", "-d", "target", default=None, help="Day to show (defaults to today)")
@_navigation_options
def calendar_day(target: str | None = None, step: str | None = None, as_json: bool = False):
    """Show one day, hour by hour."""
    _show_calendar(CalendarView.DAY, target, as_json, step)


@calendar.command("week")
@click.option("--date", "-d", "target", default=None, help="Any day in the week")
@_navigation_options
def calendar_week(target: str | None = None, step: str | None = None, as_json: bool = False):
    """Show one week."""
    _show_calendar(CalendarView.WEEK, target, as_json, step)


@calendar.command("month")
@click.option("--date", "-d", "target", default=None, help="Any day in the month")
@_navigation_options
def calendar_month(target: str | None = None, step: str | None = None, as_json: bool = False):
    """Show one month."""
    _show_calendar(CalendarView.MONTH, target, as_json, step)


# ============== Labels ==============


@main.group(invoke_without_command=True)
@click.pass_context
def labels(ctx):
    """Manage labels."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(labels_list)


@labels.command("list")
def labels_list():
    """List labels."""
    store, user_id = _open()
    items = store.list_labels(user_id)
    if not items:
        click.echo("No labels yet. Create labels to organize your tasks.")
        return
    for label in items:
        click.echo(f"{label.id[:8]}  {label.color}  {label.name}")


@labels.command("add")
@click.argument("name")
@click.option("--color", "-c", default=None, help="Hex color (default gray)")
def labels_add(name: str, color: str | None):
    """Create a label."""
    store, user_id = _open()
    try:
        label = store.create_label(user_id, name, color)
    except ValueError as e:
        _fail(e)
    click.echo(f"Created label '{label.name}' ({label.color})")


@labels.command("edit")
@click.argument("label")
@click.option("--name", default=None)
@click.option("--color", "-c", default=None)
def labels_edit(label: str, name: str | None, color: str | None):
    """Rename or recolor a label (by id prefix or name)."""
    changes = {k: v for k, v in (("name", name), ("color", color)) if v is not None}
    if not changes:
        click.echo("Nothing to change.")
        return
    store, user_id = _open()
    try:
        target = resolve_label(store, user_id, label)
        updated = store.update_label(user_id, target.id, changes)
    except (LookupError, ValueError) as e:
        _fail(e)
    click.echo(f"Updated label '{updated.name}' ({updated.color})")


@labels.command("delete")
@click.argument("label")
def labels_delete(label: str):
    """Delete a label (by id prefix or name)."""
    store, user_id = _open()
    try:
        target = resolve_label(store, user_id, label)
        store.delete_label(user_id, target.id)
    except (LookupError, ValueError) as e:
        _fail(e)
    click.echo(f"Deleted label '{target.name}'")


# ============== Rituals ==============


@main.command()
@click.option("--schedule", "to_schedule", multiple=True, help="Schedule task for today 09:00")
@click.option("--done", "to_complete", multiple=True, help="Mark task as done")
def plan(to_schedule: tuple[str, ...], to_complete: tuple[str, ...]):
    """Daily planning: review the inbox and plan today."""
    store, user_id = _open()
    try:
        for prefix in to_schedule:
            schedule_today(store, user_id, resolve_task_id(store, user_id, prefix))
        for prefix in to_complete:
            complete_task(store, user_id, resolve_task_id(store, user_id, prefix))
    except (LookupError, ValueError) as e:
        _fail(e)

    settings = _settings()
    day_plan = daily_plan(store, user_id)
    click.echo(f"{day_plan.greeting}! Review your inbox and plan your day.\n")

    click.echo(f"### Inbox ({len(day_plan.inbox)} tasks to review)")
    if day_plan.inbox:
        for task in day_plan.inbox:
            click.echo(f"  {format_task_line(task, settings)}")
    else:
        click.echo("  All done!")

    click.echo(f"\n### Today ({len(day_plan.scheduled_today)} scheduled)")
    if day_plan.scheduled_today:
        for task in day_plan.scheduled_today:
            click.echo(f"  {format_time(task.start_time, settings):>8}  {task.title}")
    else:
        click.echo("  Nothing scheduled yet.")


@main.command()
@click.option("--minutes", "-m", type=click.IntRange(1, 60), default=25, show_default=True)
@click.option("--short", type=click.IntRange(1, 60), default=5, show_default=True, help="Short break minutes")
@click.option("--long", "long_", type=click.IntRange(1, 60), default=15, show_default=True, help="Long break minutes")
@click.option("--sessions", "-n", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--task", "task_id", default=None, help="Task to focus on")
def focus(minutes: int, short: int, long_: int, sessions: int, task_id: str | None):
    """Run a Pomodoro focus timer."""
    settings = _settings()
    if task_id:
        store, user_id = _open()
        try:
            title = store.get_task(user_id, resolve_task_id(store, user_id, task_id)).title
        except (LookupError, ValueError) as e:
            _fail(e)
        click.echo(f"Focusing on: {title}")

    timer = FocusTimer(sound_enabled=settings.sound_effects)
    timer.set_durations(minutes, short, long_)

    def on_tick(t: FocusTimer) -> None:
        click.echo(f"\r{t.label:12} {t.format_remaining()} {t.progress():4.0%}  ", nl=False)

    def on_complete(finished: TimerMode, t: FocusTimer) -> None:
        if t.sound_enabled:
            click.echo("\a", nl=False)
        if finished == TimerMode.FOCUS:
            click.echo(f"\nSession {t.sessions} complete. Next: {t.label}")
        else:
            click.echo("\nBreak over. Back to focus.")

    try:
        run_focus_session(timer, on_tick, on_complete, focus_sessions=sessions)
    except KeyboardInterrupt:
        click.echo(f"\nStopped. {timer.sessions} session(s) completed.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(as_json: bool):
    """Productivity statistics."""
    store, user_id = _open()
    s = task_stats(store, user_id)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "total": s.total,
                    "completed": s.completed,
                    "pending": s.pending,
                    "completion_rate": s.completion_rate,
                    "completed_this_week": s.completed_this_week,
                    "daily": [{"date": d.label, "completed": d.completed} for d in s.daily],
                    "priority": s.priority,
                    "recent_completed": [
                        {"id": t.id, "title": t.title, "updated_at": t.updated_at.isoformat()}
                        for t in s.recent_completed
                    ],
                },
                indent=2,
            )
        )
        return

    click.echo(f"Total {s.total} | Completed {s.completed} | Pending {s.pending} | {s.completion_rate}%\n")
    click.echo(f"Last 7 days ({s.weekly_total} completed):")
    for d in s.daily:
        bar = "█" * round(20 * d.completed / s.busiest_day)
        click.echo(f"  {d.label}  {bar} {d.completed}")
    click.echo(
        f"\nBy priority: high {s.priority['HIGH']}, "
        f"medium {s.priority['MEDIUM']}, low {s.priority['LOW']}"
    )
    if s.recent_completed:
        click.echo("\nRecently completed:")
        for t in s.recent_completed:
            click.echo(f"  ✓ {t.title}")


# ============== Settings ==============


@main.group(invoke_without_command=True)
@click.pass_context
def settings(ctx):
    """Show or change settings."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(settings_show)


@settings.command("show")
def settings_show():
    """Show current settings."""
    for key, value in _settings().to_dict().items():
        click.echo(f"{key:20} {value}")


@settings.command("set")
@click.argument("key")
@click.argument("value")
def settings_set(key: str, value: str):
    """Change one setting, e.g. `settings set time-format 24h`."""
    store = get_settings_store(load_config())
    try:
        update_setting(store, key, value)
    except ValueError as e:
        _fail(e)
    click.echo(f"{key} = {value}")


# ============== Bot ==============


@main.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def bot(debug: bool):
    """Run the Telegram bot."""
    try:
        from .telegram_bot import run_bot
        click.echo("Starting Control Time Telegram bot...")
        click.echo("Press Ctrl+C to stop")
        run_bot(debug=debug)
    except ImportError as e:
        click.echo("Error: Missing dependencies. Run 'pip install python-telegram-bot apscheduler'", err=True)
        click.echo(f"Details: {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nBot stopped.")


if __name__ == "__main__":
    main()
