import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from carwash.core.errors import InvalidFormat

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def time_to_minutes(clock: str) -> int:
    """Parse "HH:MM" into minutes since midnight."""
    if not isinstance(clock, str):
        raise InvalidFormat(f"Expected HH:MM string, got {clock!r}")
    match = _CLOCK_RE.match(clock.strip())
    if not match:
        raise InvalidFormat(f"Invalid time format: {clock!r} (expected HH:MM)")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    # Multi-day wrap is not supported; values past midnight fold back into the day
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidFormat(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")


def appointment_start(day: date, clock: str, tz: ZoneInfo) -> datetime:
    """Aware datetime at which an appointment starts."""
    minutes = time_to_minutes(clock)
    return datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=tz)


def minutes_until(start: datetime, now: datetime) -> float:
    return (start - now).total_seconds() / 60
