"""Random values and linear interpolation over randomized breakpoints.

A random-linear table may use `random(min, max)` (or a bare [min, max] pair) in
place of any output; every evaluation redraws those outputs before
interpolating:

    [[0, 0], [20, random(25, 45)], [21, random(50, 75)], [22, 100], [24, 0]]
"""

import random
import re
from collections.abc import Callable
from typing import Any

from ..errors import InvalidInterpolationSpec
from .linear import linear_value
from .spec import as_number, load_json, parse_breakpoint_spec

_NUMBER = r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?"
_RANDOM_CALL = re.compile(rf"random\(\s*({_NUMBER})\s*,\s*({_NUMBER})\s*\)")


def _bounds(spec: Any) -> tuple[float, float]:
    if isinstance(spec, str):
        spec = load_json(spec.strip(), "random interval")
    if isinstance(spec, dict):
        if set(spec) != {"min", "max"}:
            raise InvalidInterpolationSpec(
                f"Invalid random interval {spec!r}: expected keys 'min' and 'max'"
            )
        spec = [spec["min"], spec["max"]]
    if not isinstance(spec, (list, tuple)) or len(spec) != 2:
        raise InvalidInterpolationSpec(
            f"Invalid random interval {spec!r}: expected [min, max]"
        )
    low = as_number(spec[0], "random interval bound")
    high = as_number(spec[1], "random interval bound")
    if low > high:
        raise InvalidInterpolationSpec(
            f"Invalid random interval {spec!r}: min is greater than max"
        )
    return low, high


def random_interpolator(spec: Any) -> Callable[[], float]:
    """Build a uniform random generator over the closed interval [min, max].

    Args:
        spec: [min, max], {"min": .., "max": ..}, or either as a JSON string

    Raises:
        InvalidInterpolationSpec: If the bounds are not numbers or min > max
    """
    low, high = _bounds(spec)

    def draw() -> float:
        return random.uniform(low, high)

    return draw


def _expand_random_calls(raw: Any) -> Any:
    """Rewrite random(a, b) cells into [a, b] so the table becomes valid JSON."""
    if isinstance(raw, str):
        return _RANDOM_CALL.sub(r"[\1, \2]", raw)
    if isinstance(raw, dict) and isinstance(raw.get("spec"), str):
        return {**raw, "spec": _RANDOM_CALL.sub(r"[\1, \2]", raw["spec"])}
    return raw


def _random_cell(value: Any) -> float | Callable[[], float]:
    if isinstance(value, (list, tuple, dict)):
        return random_interpolator(value)
    return as_number(value, "breakpoint output")


def random_linear_interpolator(interpolation_spec: Any) -> Callable[[float], float | int]:
    """Build a linear interpolator whose outputs may be random intervals.

    Raises:
        InvalidInterpolationSpec: If the specification is malformed
    """
    spec = parse_breakpoint_spec(_expand_random_calls(interpolation_spec), _random_cell)

    def interpolate(x: float) -> float | int:
        points = [(px, py() if callable(py) else py) for px, py in spec.points]
        return spec.returns.apply(linear_value(points, x))

    return interpolate
