"""Pure utility functions for fdsim.

This module contains pure functions with ZERO dependencies on fdsim models
or other fdsim modules. These are foundational utilities that can be
imported from anywhere without circular import risk.

Modules:
- eval_safe: Safe expression evaluation
- clock: Decimal hours and ISO-8601 helpers
- redact: Log payload sanitization
- callbacks: Typed listener protocols
"""

from .eval_safe import (
    parse_program,
    run_program,
    ExpressionError,
    HelperModule,
    SAFE_BUILTINS,
)
from .clock import now, to_decimal_hours, to_iso_utc, parse_iso
from .redact import sanitize_for_logs
from .callbacks import SimulationEventListener

__all__ = [
    # Eval
    "parse_program",
    "run_program",
    "ExpressionError",
    "HelperModule",
    "SAFE_BUILTINS",
    # Clock
    "now",
    "to_decimal_hours",
    "to_iso_utc",
    "parse_iso",
    # Logging
    "sanitize_for_logs",
    # Callbacks
    "SimulationEventListener",
]
