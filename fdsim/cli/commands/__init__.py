"""CLI commands for fdsim."""

from . import (
    validate,
    run,
    eval_cmd,
    config_cmd,
)

__all__ = [
    "validate",
    "run",
    "eval_cmd",
    "config_cmd",
]
