"""Text selected from a rotation table by a wall-clock component.

Specification:
    {"units": "seconds", "text": [[0, "PENDING"], [15, "REQUESTED"], [30, "IN_PROGRESS"]]}

The clock component named by `units` is looked up with step-after semantics,
so with the table above 00-14 s give "PENDING", 15-29 s "REQUESTED", and so on.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..errors import InvalidInterpolationSpec
from .spec import load_json, parse_table
from .step import step_after_value

# Component extractors; days are weekdays with Sunday=0 and months are 0-based
CLOCK_UNITS: dict[str, Callable[[datetime], int]] = {
    "milliseconds": lambda moment: moment.microsecond // 1000,
    "seconds": lambda moment: moment.second,
    "minutes": lambda moment: moment.minute,
    "hours": lambda moment: moment.hour,
    "days": lambda moment: (moment.weekday() + 1) % 7,
    "dates": lambda moment: moment.day,
    "months": lambda moment: moment.month - 1,
    "years": lambda moment: moment.year,
}


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidInterpolationSpec(f"Invalid rotation text {value!r}: a string is required")
    return value


def text_rotation_interpolator(interpolation_spec: Any) -> Callable[[datetime], str]:
    """Build a text-rotation interpolator.

    Raises:
        InvalidInterpolationSpec: If units are unknown or the text table is malformed
    """
    spec = interpolation_spec
    if isinstance(spec, str):
        spec = load_json(spec.strip(), "text rotation specification")
    if not isinstance(spec, dict) or set(spec) != {"units", "text"}:
        raise InvalidInterpolationSpec(
            f"Invalid text rotation specification {interpolation_spec!r}: "
            "'units' and 'text' are required"
        )
    if spec["units"] not in CLOCK_UNITS:
        raise InvalidInterpolationSpec(
            f"Invalid text rotation units {spec['units']!r}: "
            f"expected one of {', '.join(CLOCK_UNITS)}"
        )

    component = CLOCK_UNITS[spec["units"]]
    table = parse_table(spec["text"], output=_text)

    def interpolate(moment: datetime) -> str:
        return step_after_value(table, component(moment))

    return interpolate
