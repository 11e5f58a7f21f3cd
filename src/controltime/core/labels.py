"""Pure label domain logic - no I/O dependencies."""

import re
from dataclasses import dataclass

DEFAULT_COLOR = "#6b7280"

_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class LabelNotFoundError(LookupError):
    """Raised when a label does not exist for the current user."""

    pass


@dataclass
class Label:
    """A colored tag used to organize tasks."""

    id: str
    name: str
    color: str = DEFAULT_COLOR


def validate_label_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Label name cannot be empty")
    return name


def normalize_color(color: str | None) -> str:
    """Fall back to the default gray; otherwise require a hex color."""
    if not color:
        return DEFAULT_COLOR
    color = color.strip()
    if not _COLOR_PATTERN.match(color):
        raise ValueError(f"Invalid color '{color}' (expected #rgb or #rrggbb)")
    return color.lower()


def sort_labels(labels: list[Label]) -> list[Label]:
    """Sort labels alphabetically."""
    return sorted(labels, key=lambda label: label.name.lower())
