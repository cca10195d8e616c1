"""Wall-clock helpers shared by the time-driven interpolators."""

from datetime import datetime, timezone


def now() -> datetime:
    """Current local wall-clock time (naive, like the simulation schedules)."""
    return datetime.now()


def to_decimal_hours(moment: datetime) -> float:
    """Hours elapsed since midnight, e.g. 10:30:00 -> 10.5."""
    return moment.hour + moment.minute / 60 + moment.second / 3600


def to_iso_utc(moment: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with milliseconds and a trailing Z.

    Naive datetimes are taken as local time.

    Example:
        >>> to_iso_utc(datetime(2016, 1, 1, 10, 0, tzinfo=timezone.utc))
        '2016-01-01T10:00:00.000Z'
    """
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing Z for UTC.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed
