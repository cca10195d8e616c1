"""Attribute value interpolators.

Each builder validates its specification eagerly (raising
InvalidInterpolationSpec) and returns a function producing a value per call:

- linear, step_before, step_after, random_linear: breakpoint tables over decimal hours
- random: a uniform draw between two bounds
- date_increment, multiline_position, text_rotation: time-driven values
- attribute_function: expressions with entity references and persisted state
"""

from .attribute_function import attribute_function_interpolator
from .date_increment import date_increment_interpolator
from .linear import linear_interpolator, linear_value
from .multiline_position import multiline_position_interpolator
from .random_linear import random_interpolator, random_linear_interpolator
from .spec import BreakpointSpec, ReturnDescriptor, parse_breakpoint_spec
from .step import (
    step_after_interpolator,
    step_after_value,
    step_before_interpolator,
    step_before_value,
)
from .text_rotation import text_rotation_interpolator

__all__ = [
    "linear_interpolator",
    "linear_value",
    "step_before_interpolator",
    "step_before_value",
    "step_after_interpolator",
    "step_after_value",
    "random_interpolator",
    "random_linear_interpolator",
    "date_increment_interpolator",
    "multiline_position_interpolator",
    "text_rotation_interpolator",
    "attribute_function_interpolator",
    "BreakpointSpec",
    "ReturnDescriptor",
    "parse_breakpoint_spec",
]
