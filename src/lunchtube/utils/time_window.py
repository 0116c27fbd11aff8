"""Lunch window evaluation. Pure functions of settings and the current time."""

from datetime import datetime

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> int:
    """Convert ``"HH:MM"`` to minutes since midnight."""
    try:
        hours_text, minutes_text = value.split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return hours * 60 + minutes


def _minute_of_day(now: datetime) -> int:
    return now.hour * 60 + now.minute


def is_window_active(settings, now: datetime) -> bool:
    """True when ``now`` falls in the half-open interval [start, end)."""
    start = parse_hhmm(settings.lunch_start)
    end = parse_hhmm(settings.lunch_end)
    current = _minute_of_day(now)
    return start <= current < end


def minutes_until_start(settings, now: datetime) -> int:
    """Minutes until the next occurrence of the window start (0 at start)."""
    start = parse_hhmm(settings.lunch_start)
    return (start - _minute_of_day(now)) % MINUTES_PER_DAY


def session_key(settings, now: datetime) -> str:
    """Key scoping the refresh counter to one day's window."""
    return f"{now.date().isoformat()}@{settings.lunch_start}"
