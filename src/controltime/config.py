"""Configuration management for Control Time."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

CONTROLTIME_HOME = Path(os.environ.get("CONTROLTIME_HOME", Path.home() / "controltime"))
CONFIG_FILE = CONTROLTIME_HOME / "config" / "controltime.conf"
SESSION_FILE = CONTROLTIME_HOME / "config" / ".session.json"
SETTINGS_FILE = CONTROLTIME_HOME / "config" / "settings.json"
DATA_DIR = CONTROLTIME_HOME / "data"
DATABASE_FILE = DATA_DIR / "controltime.db"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Control Time configuration."""

    google_client_id: str = ""
    google_client_secret: str = ""
    database_path: str = ""
    settings_file: str = ""
    timezone: str = "UTC"
    log_level: str = "WARNING"
    # Telegram bot settings
    telegram_bot_token: str = ""
    telegram_allowed_users: list[int] = field(default_factory=list)
    telegram_planning_time: str = "08:30"

    @property
    def database(self) -> Path:
        if self.database_path:
            return Path(self.database_path).expanduser()
        return DATABASE_FILE

    @property
    def settings_path(self) -> Path:
        if self.settings_file:
            return Path(self.settings_file).expanduser()
        return SETTINGS_FILE


@dataclass
class Session:
    """Signed-in user and their OAuth tokens."""

    user_id: str = ""
    email: str = ""
    name: str = ""
    access_token: str = ""
    refresh_token: str = ""
    expires_at: int = 0

    @property
    def is_signed_in(self) -> bool:
        return bool(self.user_id and (self.access_token or self.refresh_token))

    def save(self, path: Path | None = None) -> None:
        """Save session to file (owner read/write only)."""
        path = path or SESSION_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(
                {
                    "user_id": self.user_id,
                    "email": self.email,
                    "name": self.name,
                    "access_token": self.access_token,
                    "refresh_token": self.refresh_token,
                    "expires_at": self.expires_at,
                }
            )
        )
        path.chmod(0o600)

    @classmethod
    def load(cls, path: Path | None = None) -> "Session":
        """Load session from file. Missing or corrupt files mean signed out."""
        path = path or SESSION_FILE
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text())
            return cls(
                user_id=data.get("user_id", ""),
                email=data.get("email", ""),
                name=data.get("name", ""),
                access_token=data.get("access_token", ""),
                refresh_token=data.get("refresh_token", ""),
                expires_at=data.get("expires_at", 0),
            )
        except (json.JSONDecodeError, AttributeError):
            logger.warning(f"Ignoring unreadable session file {path}")
            return cls()

    @staticmethod
    def clear(path: Path | None = None) -> bool:
        """Delete the session file. Returns True if one existed."""
        path = path or SESSION_FILE
        if path.exists():
            path.unlink()
            return True
        return False


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from unquoted values."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from controltime.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "google_client_id":
                config.google_client_id = value
            case "google_client_secret":
                config.google_client_secret = value
            case "database_path":
                config.database_path = value
            case "settings_file":
                config.settings_file = value
            case "timezone":
                config.timezone = value
            case "log_level":
                config.log_level = value.upper()
            case "telegram_bot_token":
                config.telegram_bot_token = value
            case "telegram_allowed_users":
                try:
                    config.telegram_allowed_users = [
                        int(u.strip()) for u in value.split(",") if u.strip()
                    ]
                except ValueError:
                    logger.warning(f"Invalid TELEGRAM_ALLOWED_USERS: {value}")
            case "telegram_planning_time":
                config.telegram_planning_time = value
            case _:
                logger.debug(f"Ignoring unknown config key: {key}")

    return config


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level.upper(), logging.WARNING))
