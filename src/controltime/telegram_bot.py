"""Control Time Telegram Bot."""

import logging

from telegram import Bot, Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters
from telegram.error import TelegramError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .adapters.google_oauth import AuthenticationError
from .config import configure_logging, load_config
from .telegram_format import send_markdown
from .telegram_handlers import (
    add_handler,
    calendar_handler,
    format_plan,
    help_handler,
    inbox_handler,
    open_account,
    plan_handler,
    start_handler,
    stats_handler,
    today_handler,
)
from .workflows import daily_plan

logger = logging.getLogger(__name__)


class AuthFilter(filters.BaseFilter):
    """Filter to only allow authorized users."""

    def __init__(self, allowed_users: list[int]):
        super().__init__()
        self.allowed_users = allowed_users

    def check_update(self, update: Update) -> bool:
        if not self.allowed_users:
            return True
        user = update.effective_user
        if user is None:
            return False
        return user.id in self.allowed_users


def create_application(config=None) -> Application:
    """Create and configure the Telegram bot application."""
    if config is None:
        config = load_config()

    if not config.telegram_bot_token:
        raise ValueError(
            "TELEGRAM_BOT_TOKEN not configured. "
            "Get a token from @BotFather on Telegram and add it to controltime.conf"
        )

    app = Application.builder().token(config.telegram_bot_token).build()
    auth_filter = AuthFilter(config.telegram_allowed_users)

    for name, handler in (
        ("start", start_handler),
        ("help", help_handler),
        ("today", today_handler),
        ("calendar", calendar_handler),
        ("inbox", inbox_handler),
        ("add", add_handler),
        ("plan", plan_handler),
        ("stats", stats_handler),
    ):
        app.add_handler(CommandHandler(name, handler, filters=auth_filter))

    async def unauthorized_handler(update: Update, context):
        user = update.effective_user
        logger.warning(f"Unauthorized access attempt from user {user.id} ({user.username})")
        await update.message.reply_text(
            "Unauthorized. This bot is private.\n"
            "If you're the owner, add your Telegram user ID to TELEGRAM_ALLOWED_USERS in controltime.conf"
        )

    if config.telegram_allowed_users:
        app.add_handler(MessageHandler(~auth_filter & filters.ALL, unauthorized_handler))

    return app


def parse_clock(value: str) -> tuple[int, int]:
    """'HH:MM' to (hour, minute). Raises ValueError when malformed."""
    hour, minute = map(int, value.split(":"))
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Time out of range: {value}")
    return hour, minute


def setup_scheduler(app: Application, config=None) -> AsyncIOScheduler:
    """Set up the daily planning message."""
    if config is None:
        config = load_config()

    scheduler = AsyncIOScheduler(timezone=config.timezone or "UTC")

    if config.telegram_planning_time and config.telegram_allowed_users:
        try:
            hour, minute = parse_clock(config.telegram_planning_time)
            scheduler.add_job(
                send_planning_reminder,
                CronTrigger(hour=hour, minute=minute),
                args=[app.bot, config.telegram_allowed_users],
                id="daily_planning",
            )
            logger.info(f"Scheduled daily planning at {hour:02d}:{minute:02d}")
        except ValueError:
            logger.warning(f"Invalid planning time format: {config.telegram_planning_time}")

    return scheduler


async def send_planning_reminder(bot: Bot, user_ids: list[int]):
    """Send the daily planning overview to all authorized users."""
    try:
        store, user_id, settings = open_account()
    except AuthenticationError as e:
        logger.error(f"Skipping daily planning: {e}")
        return

    text = format_plan(daily_plan(store, user_id), settings)
    logger.info("Sending daily planning message")
    for chat_id in user_ids:
        try:
            await send_markdown(bot, text, chat_id=chat_id)
        except TelegramError as e:
            logger.error(f"Failed to send daily planning to user {chat_id}: {e}")


def run_bot(debug: bool = False):
    """Run the Telegram bot."""
    config = load_config()
    configure_logging("DEBUG" if debug else "INFO")

    app = create_application(config)
    scheduler = setup_scheduler(app, config)

    async def post_init(application: Application) -> None:
        """Start scheduler after event loop is running."""
        scheduler.start()
        logger.info("Scheduler started")

    app.post_init = post_init

    if config.telegram_allowed_users:
        logger.info(f"Bot authorized for users: {config.telegram_allowed_users}")
    else:
        logger.warning("No TELEGRAM_ALLOWED_USERS configured - bot is open to anyone!")

    logger.info("Starting Control Time Telegram bot...")
    app.run_polling(allowed_updates=Update.ALL_TYPES)
