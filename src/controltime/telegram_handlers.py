"""Telegram command handlers."""

import logging
from datetime import date, datetime

from telegram import Update
from telegram.ext import ContextTypes

from .adapters.google_oauth import AuthenticationError
from .config import load_config
from .core.calendar import CalendarView, range_label, window_for
from .core.planning import DailyPlan
from .core.settings import AppSettings, format_time, week_start_day
from .core.stats import Stats
from .telegram_format import send_markdown
from .workflows import (
    add_task,
    calendar_occurrences,
    daily_plan,
    format_occurrence_line,
    format_task_line,
    get_session_provider,
    get_settings_store,
    get_store,
    group_occurrences_by_day,
    require_user,
    task_stats,
)

logger = logging.getLogger(__name__)

NOT_SIGNED_IN = "Not signed in. Run `controltime auth` on the CLI."

COMMANDS = (
    "/today - Today's schedule\n"
    "/calendar - This week's calendar\n"
    "/inbox - Tasks waiting to be done\n"
    "/add <title> - Add a task to the inbox\n"
    "/plan - Daily planning overview\n"
    "/stats - Productivity statistics\n"
    "/help - Show all commands"
)


def open_account():
    """Store, user id and settings for the signed-in account."""
    config = load_config()
    user_id = require_user(get_session_provider(config))
    return get_store(config), user_id, get_settings_store(config).load()


def format_plan(plan: DailyPlan, settings: AppSettings) -> str:
    lines = [f"*{plan.greeting}!* Review your inbox and plan your day.", ""]
    lines.append(f"*Inbox* ({len(plan.inbox)})")
    lines.extend(f"- {t.title}" for t in plan.inbox[:10])
    if len(plan.inbox) > 10:
        lines.append(f"- ...and {len(plan.inbox) - 10} more")
    if not plan.inbox:
        lines.append("All done!")
    lines.append("")
    lines.append(f"*Today* ({len(plan.scheduled_today)} scheduled)")
    lines.extend(
        f"- `{format_time(t.start_time, settings)}` {t.title}" for t in plan.scheduled_today
    )
    if not plan.scheduled_today:
        lines.append("Nothing scheduled yet. Use `controltime plan --schedule ID`.")
    return "\n".join(lines)


def format_stats(s: Stats) -> str:
    lines = [
        "*Statistics*",
        "",
        f"Total: {s.total} | Done: {s.completed} | Pending: {s.pending}",
        f"Completion rate: {s.completion_rate}%",
        f"This week: {s.completed_this_week} completed",
        "",
        "*Last 7 days*",
    ]
    lines.extend(f"`{d.label}` {d.completed}" for d in s.daily)
    return "\n".join(lines)


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(
        "Hey! I'm Control Time, your productivity assistant.\n\nCommands:\n" + COMMANDS
    )


async def help_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await send_markdown(update.message, "*Control Time Commands*\n\n" + COMMANDS)


async def today_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /today command - today's occurrences, recurring ones included."""
    try:
        store, user_id, settings = open_account()
    except AuthenticationError:
        await update.message.reply_text(NOT_SIGNED_IN)
        return

    today = date.today()
    events = group_occurrences_by_day(calendar_occurrences(store, user_id)).get(today, [])
    if not events:
        await update.message.reply_text("Nothing scheduled today.")
        return

    lines = [f"*{today.strftime('%A, %B %d')}*", ""]
    lines.extend(f"- {format_occurrence_line(o, settings)}" for o in events)
    await send_markdown(update.message, "\n".join(lines))


async def calendar_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /calendar command - this week, grouped by day."""
    try:
        store, user_id, settings = open_account()
    except AuthenticationError:
        await update.message.reply_text(NOT_SIGNED_IN)
        return

    today = date.today()
    week_starts_on = week_start_day(settings)
    range_start, range_end = window_for(CalendarView.WEEK, today, week_starts_on)
    week = [
        o
        for o in calendar_occurrences(store, user_id)
        if range_start <= o.start <= range_end
    ]

    lines = [f"*{range_label(CalendarView.WEEK, today, week_starts_on)}*"]
    for day, events in group_occurrences_by_day(week).items():
        lines.append("")
        lines.append(f"*{day.strftime('%A, %b %d')}*")
        lines.extend(f"- {format_occurrence_line(o, settings)}" for o in events)
    if not week:
        lines.append("\nNo events this week.")
    await send_markdown(update.message, "\n".join(lines))


async def inbox_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /inbox command."""
    try:
        store, user_id, settings = open_account()
    except AuthenticationError:
        await update.message.reply_text(NOT_SIGNED_IN)
        return

    plan = daily_plan(store, user_id)
    if not plan.inbox:
        await update.message.reply_text("Inbox is empty.")
        return
    lines = ["*Inbox*", ""]
    lines.extend(f"- `{format_task_line(t, settings)}`" for t in plan.inbox)
    await send_markdown(update.message, "\n".join(lines))


async def add_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /add <title>."""
    title = " ".join(context.args or []).strip()
    if not title:
        await update.message.reply_text("Usage: /add <title>")
        return

    try:
        store, user_id, _ = open_account()
    except AuthenticationError:
        await update.message.reply_text(NOT_SIGNED_IN)
        return

    task = add_task(store, user_id, title)
    await update.message.reply_text(f"Added to inbox: {task.title}")


async def plan_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /plan command."""
    try:
        store, user_id, settings = open_account()
    except AuthenticationError:
        await update.message.reply_text(NOT_SIGNED_IN)
        return
    await send_markdown(update.message, format_plan(daily_plan(store, user_id), settings))


async def stats_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /stats command."""
    try:
        store, user_id, _ = open_account()
    except AuthenticationError:
        await update.message.reply_text(NOT_SIGNED_IN)
        return
    await send_markdown(update.message, format_stats(task_stats(store, user_id, datetime.now())))
