"""Pomodoro focus timer state machine - pure logic, no I/O.

The timer does not keep time itself: a periodic callback calls tick() once
per second and the timer reacts.
"""

from dataclasses import dataclass, field
from enum import Enum


class TimerMode(Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


MODE_LABELS = {
    TimerMode.FOCUS: "Focus",
    TimerMode.SHORT_BREAK: "Short Break",
    TimerMode.LONG_BREAK: "Long Break",
}

LONG_BREAK_EVERY = 4
MIN_MINUTES = 1
MAX_MINUTES = 60


def _default_durations() -> dict[TimerMode, int]:
    return {TimerMode.FOCUS: 25, TimerMode.SHORT_BREAK: 5, TimerMode.LONG_BREAK: 15}


@dataclass
class FocusTimer:
    """Countdown timer cycling between focus sessions and breaks."""

    durations: dict[TimerMode, int] = field(default_factory=_default_durations)
    mode: TimerMode = TimerMode.FOCUS
    time_left: int = 0
    is_running: bool = False
    sessions: int = 0
    sound_enabled: bool = True

    def __post_init__(self):
        if not self.time_left:
            self.time_left = self.duration_seconds()

    def duration_seconds(self, mode: TimerMode | None = None) -> int:
        """Full length of a mode in seconds."""
        return self.durations[mode or self.mode] * 60

    def toggle(self) -> None:
        self.is_running = not self.is_running

    def reset(self) -> None:
        """Stop and restore the full duration of the current mode."""
        self.is_running = False
        self.time_left = self.duration_seconds()

    def switch_mode(self, mode: TimerMode) -> None:
        self.mode = mode
        self.reset()

    def set_durations(self, focus: int, short_break: int, long_break: int) -> None:
        """Change durations (minutes). The current mode restarts."""
        for name, minutes in (("focus", focus), ("short break", short_break), ("long break", long_break)):
            if not MIN_MINUTES <= minutes <= MAX_MINUTES:
                raise ValueError(
                    f"Invalid {name} duration {minutes} (must be {MIN_MINUTES}-{MAX_MINUTES} minutes)"
                )
        self.durations = {
            TimerMode.FOCUS: focus,
            TimerMode.SHORT_BREAK: short_break,
            TimerMode.LONG_BREAK: long_break,
        }
        self.reset()

    def tick(self) -> TimerMode | None:
        """
        Advance one second.

        Returns the mode that just completed, or None.
        """
        if not self.is_running:
            return None
        if self.time_left > 0:
            self.time_left -= 1
        if self.time_left > 0:
            return None
        return self._complete()

    def _complete(self) -> TimerMode:
        finished = self.mode
        self.is_running = False
        if finished == TimerMode.FOCUS:
            self.sessions += 1
            if self.sessions % LONG_BREAK_EVERY == 0:
                self.switch_mode(TimerMode.LONG_BREAK)
            else:
                self.switch_mode(TimerMode.SHORT_BREAK)
        else:
            self.switch_mode(TimerMode.FOCUS)
        return finished

    def progress(self) -> float:
        """Fraction of the current mode elapsed (0.0-1.0)."""
        return 1 - self.time_left / self.duration_seconds()

    def format_remaining(self) -> str:
        minutes, seconds = divmod(self.time_left, 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def label(self) -> str:
        return MODE_LABELS[self.mode]
