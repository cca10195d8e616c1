"""Resolution of attribute specifications into evaluators.

A specification is either an interpolator call such as
``time-linear-interpolator([[0, 0], [24, 100]])`` or anything else, which is
handed to the expression interpolator (itself short-circuiting plain literals).
Resolution happens once, when a simulation is configured; the resulting
AttributeEvaluator is then invoked on every tick of its attribute.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .errors import InvalidInterpolationSpec
from .interpolators import (
    attribute_function_interpolator,
    date_increment_interpolator,
    linear_interpolator,
    multiline_position_interpolator,
    random_linear_interpolator,
    step_after_interpolator,
    step_before_interpolator,
    text_rotation_interpolator,
)
from .utils.clock import now as clock_now
from .utils.clock import to_decimal_hours

logger = logging.getLogger(__name__)


class InterpolatorKind(str, Enum):
    """Interpolator call names recognised in attribute specifications."""

    TIME_LINEAR = "time-linear-interpolator"
    TIME_RANDOM_LINEAR = "time-random-linear-interpolator"
    TIME_STEP_BEFORE = "time-step-before-interpolator"
    TIME_STEP_AFTER = "time-step-after-interpolator"
    DATE_INCREMENT = "date-increment-interpolator"
    MULTILINE_POSITION = "multiline-position-interpolator"
    TEXT_ROTATION = "text-rotation-interpolator"


_BUILDERS: dict[InterpolatorKind, Callable[[Any], Callable[..., Any]]] = {
    InterpolatorKind.TIME_LINEAR: linear_interpolator,
    InterpolatorKind.TIME_RANDOM_LINEAR: random_linear_interpolator,
    InterpolatorKind.TIME_STEP_BEFORE: step_before_interpolator,
    InterpolatorKind.TIME_STEP_AFTER: step_after_interpolator,
    InterpolatorKind.DATE_INCREMENT: date_increment_interpolator,
    InterpolatorKind.MULTILINE_POSITION: multiline_position_interpolator,
    InterpolatorKind.TEXT_ROTATION: text_rotation_interpolator,
}

# Interpolators fed the wall-clock datetime instead of decimal hours
_WALL_CLOCK = {InterpolatorKind.TEXT_ROTATION}


def parse_call(spec: str) -> tuple[InterpolatorKind, str] | None:
    """Split an interpolator call into its kind and argument text.

    Returns:
        (kind, arguments) or None if spec is not an interpolator call

    Raises:
        InvalidInterpolationSpec: If the call is missing its closing parenthesis
    """
    text = spec.strip()
    for kind in InterpolatorKind:
        prefix = kind.value + "("
        if text.startswith(prefix):
            if not text.endswith(")"):
                raise InvalidInterpolationSpec(
                    f"Invalid {kind.value} call {spec!r}: missing closing parenthesis"
                )
            return kind, text[len(prefix):-1].strip()
    return None


@dataclass
class AttributeEvaluator:
    """A resolved attribute specification.

    Calling it produces the attribute's current value; each family gets the
    input it needs (decimal hours, wall-clock time or the auth token).
    """

    spec: Any
    kind: InterpolatorKind | None
    function: Callable[..., Any]

    @property
    def is_expression(self) -> bool:
        return self.kind is None

    def __call__(self, token: str | None = None, now: datetime | None = None) -> Any:
        if self.kind is None:
            return self.function(token)
        moment = now or clock_now()
        if self.kind in _WALL_CLOCK:
            return self.function(moment)
        return self.function(to_decimal_hours(moment))


def resolve(spec: Any, domain: Any = None, context_broker: Any = None) -> AttributeEvaluator:
    """Resolve an attribute specification into an evaluator.

    Args:
        spec: Interpolator call, expression or literal value
        domain: Service scope used by expressions referencing other entities
        context_broker: Context broker queried by those expressions

    Raises:
        InvalidInterpolationSpec: If an interpolator call has invalid arguments
            or an expression declares malformed state

    Example:
        >>> evaluator = resolve("time-linear-interpolator([[0, 0], [24, 24]])")
        >>> evaluator(now=datetime(2016, 1, 1, 12, 0))
        12.0
    """
    if isinstance(spec, str):
        call = parse_call(spec)
        if call is not None:
            kind, arguments = call
            logger.debug("Resolving %s with arguments %s", kind.value, arguments)
            return AttributeEvaluator(spec, kind, _BUILDERS[kind](arguments))
    return AttributeEvaluator(
        spec, None, attribute_function_interpolator(spec, domain, context_broker)
    )
