"""Typed callback protocols for simulation progress reporting.

These Protocol classes provide type-safe callback signatures without
requiring runtime changes; plain functions and lambdas work via duck typing.
"""

from typing import Any, Protocol


class SimulationEventListener(Protocol):
    """Callback for simulation progress events.

    Args:
        event: The SimulationEvent being emitted
    """

    def __call__(self, event: Any) -> None: ...
