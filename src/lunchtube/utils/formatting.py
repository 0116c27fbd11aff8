"""Duration and view-count helpers shared by ranking and the CLI."""

import re
from datetime import datetime, timezone
from typing import Optional

ISO8601_DURATION = re.compile(
    r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$"
)


def parse_duration_to_seconds(iso_duration: Optional[str]) -> int:
    """Convert a YouTube ISO-8601 duration (``PT1H2M3S``) to seconds.

    Unparseable input yields 0, which ranking treats as ineligible.
    """
    if not iso_duration:
        return 0
    match = ISO8601_DURATION.match(iso_duration.strip())
    if not match:
        return 0
    days, hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def format_duration(total_seconds: int) -> str:
    """Render seconds as ``m:ss`` or ``h:mm:ss``."""
    hours, rest = divmod(max(total_seconds, 0), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_view_count(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.0f}K"
    return str(count)


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp from the API into an aware datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_utc(moment: datetime) -> datetime:
    """Normalize naive (local) or aware datetimes to UTC."""
    return moment.astimezone(timezone.utc)
