"""Step interpolation over a breakpoint table.

step-before holds the value of the next breakpoint (the step is taken before
reaching it); step-after holds the value of the last breakpoint passed.
An input equal to a breakpoint returns that breakpoint's own output.
"""

from bisect import bisect_left, bisect_right
from collections.abc import Callable, Sequence
from typing import Any

from .spec import parse_breakpoint_spec


def step_before_value(points: Sequence[tuple[float, Any]], x: float) -> Any:
    """Output of the first breakpoint whose input is >= x (last output past the end)."""
    i = bisect_left([px for px, _ in points], x)
    if i >= len(points):
        return points[-1][1]
    return points[i][1]


def step_after_value(points: Sequence[tuple[float, Any]], x: float) -> Any:
    """Output of the last breakpoint whose input is <= x (first output before the start)."""
    i = bisect_right([px for px, _ in points], x) - 1
    if i < 0:
        return points[0][1]
    return points[i][1]


def step_before_interpolator(interpolation_spec: Any) -> Callable[[float], float | int]:
    """Build a step-before interpolator.

    Raises:
        InvalidInterpolationSpec: If the specification is malformed
    """
    spec = parse_breakpoint_spec(interpolation_spec)

    def interpolate(x: float) -> float | int:
        return spec.returns.apply(step_before_value(spec.points, x))

    return interpolate


def step_after_interpolator(interpolation_spec: Any) -> Callable[[float], float | int]:
    """Build a step-after interpolator.

    Raises:
        InvalidInterpolationSpec: If the specification is malformed
    """
    spec = parse_breakpoint_spec(interpolation_spec)

    def interpolate(x: float) -> float | int:
        return spec.returns.apply(step_after_value(spec.points, x))

    return interpolate
