"""Dates advancing from an origin by a fixed or time-dependent increment.

Specification:
    {"origin": "now" | "<ISO-8601 date>", "increment": <seconds> | <breakpoint spec>}

Each call advances the date by the increment (in seconds) and returns the new
date as UTC ISO-8601. A breakpoint-spec increment is linearly interpolated on
the decimal hours passed to the call.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from ..errors import InvalidInterpolationSpec
from ..utils.clock import parse_iso, to_iso_utc
from .linear import linear_interpolator
from .spec import as_number, load_json


def _origin(value: Any) -> datetime:
    if value == "now":
        return datetime.now(timezone.utc)
    if not isinstance(value, str):
        raise InvalidInterpolationSpec(f"Invalid date origin {value!r}")
    try:
        return parse_iso(value)
    except ValueError as e:
        raise InvalidInterpolationSpec(f"Invalid date origin {value!r}: {e}") from e


def _increment(value: Any) -> Callable[[float], float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = as_number(value, "date increment")
        return lambda decimal_hours: seconds
    return linear_interpolator(value)


def date_increment_interpolator(interpolation_spec: Any) -> Callable[[float], str]:
    """Build a date-increment interpolator.

    Raises:
        InvalidInterpolationSpec: If origin or increment are missing or malformed

    Example:
        >>> f = date_increment_interpolator('{"origin": "2016-10-20T10:00:00.000Z", "increment": 60}')
        >>> f(10.0)
        '2016-10-20T10:01:00.000Z'
    """
    spec = interpolation_spec
    if isinstance(spec, str):
        spec = load_json(spec.strip(), "date increment specification")
    if not isinstance(spec, dict) or "origin" not in spec or "increment" not in spec:
        raise InvalidInterpolationSpec(
            f"Invalid date increment specification {interpolation_spec!r}: "
            "'origin' and 'increment' are required"
        )

    cursor = _origin(spec["origin"])
    increment = _increment(spec["increment"])

    def interpolate(decimal_hours: float) -> str:
        nonlocal cursor
        cursor = cursor + timedelta(seconds=increment(decimal_hours))
        return to_iso_utc(cursor)

    return interpolate
