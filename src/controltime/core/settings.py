"""User-configurable display settings - pure logic, no I/O."""

from dataclasses import asdict, dataclass, fields, replace
from datetime import date, datetime

TIME_FORMATS = ("12h", "24h")
WEEK_STARTS = ("sunday", "monday")
DATE_FORMATS = ("DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD")

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


@dataclass
class AppSettings:
    """Settings threaded into anything that formats dates for display."""

    push_notifications: bool = True
    email_digest: bool = False
    sound_effects: bool = True
    default_duration: str = "60"
    week_start: str = "monday"
    time_format: str = "12h"
    language: str = "en"
    timezone: str = "GMT+7"
    date_format: str = "DD/MM/YYYY"
    compact_mode: bool = False
    show_keyboard_hints: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


_CHOICES = {
    "week_start": WEEK_STARTS,
    "time_format": TIME_FORMATS,
    "date_format": DATE_FORMATS,
}


def _coerce_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Invalid value for {key}: '{value}' (expected true/false)")


def merge_settings(current: AppSettings, changes: dict) -> AppSettings:
    """
    Apply a partial settings update.

    Unknown keys and invalid choices raise ValueError.
    """
    types = {f.name: f.type for f in fields(AppSettings)}
    unknown = sorted(set(changes) - set(types))
    if unknown:
        raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")

    values = {}
    for key, value in changes.items():
        if types[key] in (bool, "bool"):
            values[key] = _coerce_bool(key, value)
            continue
        value = str(value).strip()
        if key in _CHOICES and value not in _CHOICES[key]:
            raise ValueError(
                f"Invalid value for {key}: '{value}' (expected one of: {', '.join(_CHOICES[key])})"
            )
        if key == "default_duration" and (not value.isdigit() or int(value) <= 0):
            raise ValueError(f"Invalid value for default_duration: '{value}' (minutes)")
        values[key] = value

    return replace(current, **values)


def settings_from_dict(data: dict) -> AppSettings:
    """Build settings from saved data, ignoring unknown or invalid keys."""
    settings = AppSettings()
    for key, value in data.items():
        try:
            settings = merge_settings(settings, {key: value})
        except ValueError:
            continue
    return settings


def format_time(dt: datetime, settings: AppSettings) -> str:
    """Format a time of day per the 12h/24h preference."""
    if settings.time_format == "24h":
        return dt.strftime("%H:%M")
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def format_date(d: date, settings: AppSettings) -> str:
    """Format a date per the configured date format."""
    day = f"{d.day:02d}"
    month = f"{d.month:02d}"
    match settings.date_format:
        case "MM/DD/YYYY":
            return f"{month}/{day}/{d.year}"
        case "YYYY-MM-DD":
            return f"{d.year}-{month}-{day}"
        case _:
            return f"{day}/{month}/{d.year}"


def week_start_day(settings: AppSettings) -> int:
    """0 = Sunday, 1 = Monday."""
    return 0 if settings.week_start == "sunday" else 1
