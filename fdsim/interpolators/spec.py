"""Breakpoint table parsing shared by the interpolators.

An interpolation specification is one of:
- a breakpoint table: [[x0, y0], [x1, y1], ...]
- the same table as a JSON string
- an object {"spec": <table or JSON string>, "return": <ReturnDescriptor>}
- that object as a JSON string

Anything else raises InvalidInterpolationSpec.
"""

import json
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import InvalidInterpolationSpec


# =============================================================================
# Return descriptor
# =============================================================================


class ReturnDescriptor(BaseModel):
    """How an interpolated number is returned.

    `rounding` only applies to integer results; it defaults to "round" there.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["float", "integer"]
    rounding: Literal["floor", "ceil", "round"] | None = None

    def apply(self, value: float) -> float | int:
        if self.type != "integer":
            return value
        if self.rounding == "floor":
            return math.floor(value)
        if self.rounding == "ceil":
            return math.ceil(value)
        # Half up, so 2.5 -> 3 and 7.5 -> 8
        return math.floor(value + 0.5)


FLOAT_RETURN = ReturnDescriptor(type="float")


@dataclass(frozen=True)
class BreakpointSpec:
    """A validated breakpoint table plus its return descriptor."""

    points: tuple[tuple[float, Any], ...]
    returns: ReturnDescriptor = FLOAT_RETURN

    @property
    def inputs(self) -> list[float]:
        return [x for x, _ in self.points]


# =============================================================================
# Parsing
# =============================================================================


def load_json(text: str, what: str = "interpolation specification") -> Any:
    """json.loads that reports failures as InvalidInterpolationSpec."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidInterpolationSpec(f"Invalid {what} {text!r}: {e}") from e


def as_number(value: Any, what: str = "value") -> float:
    """Validate that value is a finite real number (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInterpolationSpec(f"Invalid {what} {value!r}: a number is required")
    if not math.isfinite(value):
        raise InvalidInterpolationSpec(f"Invalid {what} {value!r}: must be finite")
    return value


def parse_return(raw: Any) -> ReturnDescriptor:
    """Validate a return descriptor; None means float without rounding."""
    if raw is None:
        return FLOAT_RETURN
    if isinstance(raw, str):
        raw = load_json(raw, "return descriptor")
    if not isinstance(raw, dict):
        raise InvalidInterpolationSpec(f"Invalid return descriptor {raw!r}")
    try:
        return ReturnDescriptor.model_validate(raw)
    except ValidationError as e:
        raise InvalidInterpolationSpec(f"Invalid return descriptor {raw!r}: {e}") from e


def split_spec(raw: Any) -> tuple[Any, ReturnDescriptor]:
    """Separate the table part of a specification from its return descriptor.

    String specifications are tried as a {"spec", "return"} object first and
    fall back to a bare table.
    """
    if isinstance(raw, str):
        raw = load_json(raw.strip())

    if isinstance(raw, dict):
        unknown = set(raw) - {"spec", "return"}
        if "spec" not in raw or unknown:
            raise InvalidInterpolationSpec(
                f"Invalid interpolation specification {raw!r}: "
                "expected keys 'spec' and optionally 'return'"
            )
        table = raw["spec"]
        if isinstance(table, str):
            table = load_json(table.strip())
        return table, parse_return(raw.get("return"))

    return raw, FLOAT_RETURN


def parse_table(
    table: Any,
    output: Callable[[Any], Any] = as_number,
    min_points: int = 2,
) -> tuple[tuple[float, Any], ...]:
    """Validate a breakpoint table.

    Args:
        table: Candidate list of [input, output] pairs
        output: Validator/converter applied to every output cell
        min_points: Minimum number of pairs

    Returns:
        Tuple of (input, output) pairs

    Raises:
        InvalidInterpolationSpec: If the table is malformed or inputs decrease
    """
    if not isinstance(table, (list, tuple)) or len(table) < min_points:
        raise InvalidInterpolationSpec(
            f"Invalid breakpoint table {table!r}: "
            f"at least {min_points} [input, output] pairs are required"
        )

    points = []
    for pair in table:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise InvalidInterpolationSpec(
                f"Invalid breakpoint {pair!r}: each breakpoint must be an [input, output] pair"
            )
        points.append((as_number(pair[0], "breakpoint input"), output(pair[1])))

    for (x0, _), (x1, _) in zip(points, points[1:]):
        if x1 < x0:
            raise InvalidInterpolationSpec(
                f"Invalid breakpoint table {table!r}: inputs must be in ascending order"
            )
    return tuple(points)


def parse_breakpoint_spec(
    raw: Any, output: Callable[[Any], Any] = as_number
) -> BreakpointSpec:
    """Parse any accepted specification form into a BreakpointSpec."""
    table, returns = split_spec(raw)
    return BreakpointSpec(points=parse_table(table, output), returns=returns)
