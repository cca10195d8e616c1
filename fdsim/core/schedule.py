"""Schedule strings: "once" or a repeating trigger.

Accepted repeating forms:
- "every N second(s)|minute(s)|hour(s)"
- six-field cron seconds step "*/N * * * * *" (every N seconds)
- five-field cron minutes step "*/N * * * *" (every N minutes)
"""

import re
from dataclasses import dataclass

ONCE = "once"

_EVERY = re.compile(r"every\s+(\d+)\s+(second|minute|hour)s?", re.IGNORECASE)
_CRON_SECONDS = re.compile(r"\*/(\d+)(\s+\*){5}")
_CRON_MINUTES = re.compile(r"\*/(\d+)(\s+\*){4}")
_UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600}


@dataclass(frozen=True)
class Schedule:
    """A parsed schedule; interval is None for one-shot schedules."""

    text: str
    interval: float | None = None

    @property
    def once(self) -> bool:
        return self.interval is None


def parse_schedule(text: str | None) -> Schedule:
    """Parse a schedule string.

    Raises:
        ValueError: If the schedule is not recognised or its interval is zero
    """
    if text is None:
        return Schedule(ONCE)
    normalized = " ".join(text.split())
    if normalized.lower() == ONCE:
        return Schedule(ONCE)

    if match := _EVERY.fullmatch(normalized):
        interval = int(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]
    elif match := _CRON_SECONDS.fullmatch(normalized):
        interval = int(match.group(1))
    elif match := _CRON_MINUTES.fullmatch(normalized):
        interval = int(match.group(1)) * 60
    else:
        raise ValueError(
            f"Invalid schedule {text!r}: expected 'once', 'every N seconds|minutes|hours' "
            "or a '*/N * * * * *' cron step"
        )

    if interval <= 0:
        raise ValueError(f"Invalid schedule {text!r}: interval must be positive")
    return Schedule(normalized, float(interval))
