"""Linear interpolation over a breakpoint table."""

from bisect import bisect_right
from collections.abc import Callable, Sequence
from typing import Any

from .spec import parse_breakpoint_spec


def linear_value(points: Sequence[tuple[float, float]], x: float) -> float:
    """Piecewise-linear value of a breakpoint table at x.

    Inputs outside the table clamp to the nearest boundary output, and an input
    equal to a breakpoint returns that breakpoint's output unchanged.
    """
    if x <= points[0][0]:
        return points[0][1]
    if x >= points[-1][0]:
        return points[-1][1]

    i = bisect_right([px for px, _ in points], x)
    x0, y0 = points[i - 1]
    x1, y1 = points[i]
    if x == x0:
        return y0
    return y0 + (y1 - y0) * (x - x0) / (x1 - x0)


def linear_interpolator(interpolation_spec: Any) -> Callable[[float], float | int]:
    """Build a linear interpolator.

    Args:
        interpolation_spec: Breakpoint table, JSON string, or {"spec", "return"} object

    Returns:
        Function mapping an input (usually decimal hours) to the interpolated value

    Raises:
        InvalidInterpolationSpec: If the specification is malformed

    Example:
        >>> f = linear_interpolator([[1, 1], [5, 5], [10, 10]])
        >>> f(2.5)
        2.5
    """
    spec = parse_breakpoint_spec(interpolation_spec)

    def interpolate(x: float) -> float | int:
        return spec.returns.apply(linear_value(spec.points, x))

    return interpolate
