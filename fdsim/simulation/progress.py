"""Thread-safe simulation progress tracking.

SimulationProgress is both an event emitter (listeners registered per event
type with on()) and a running tally the CLI display reads via snapshot().
Events may be emitted from worker threads; listeners run on the emitting
thread.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field

from ..core.models.events import SimulationEvent, SimulationEventType
from ..utils.callbacks import SimulationEventListener

logger = logging.getLogger(__name__)


@dataclass
class SimulationProgress:
    """Event listeners plus cumulative counters for one simulation."""

    token_requests: int = 0
    token_responses: int = 0
    update_requests: int = 0
    update_responses: int = 0
    errors: int = 0
    last_error: str | None = None
    _listeners: dict[SimulationEventType, list[SimulationEventListener]] = field(
        default_factory=lambda: defaultdict(list)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def on(
        self,
        event_type: SimulationEventType | str,
        listener: SimulationEventListener,
    ) -> None:
        """Register a listener for an event type ("update-request", ...)."""
        with self._lock:
            self._listeners[SimulationEventType(event_type)].append(listener)

    def off(
        self,
        event_type: SimulationEventType | str,
        listener: SimulationEventListener,
    ) -> None:
        with self._lock:
            listeners = self._listeners[SimulationEventType(event_type)]
            if listener in listeners:
                listeners.remove(listener)

    def remove_all_listeners(self) -> None:
        with self._lock:
            self._listeners.clear()

    def emit(self, event: SimulationEvent) -> None:
        """Record an event and notify its listeners.

        A failing listener is logged and does not stop the others.
        """
        with self._lock:
            self._count(event)
            listeners = list(self._listeners.get(event.type, ()))
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener for %s failed", event.type.value)

    def _count(self, event: SimulationEvent) -> None:
        if event.type == SimulationEventType.TOKEN_REQUEST:
            self.token_requests += 1
        elif event.type == SimulationEventType.TOKEN_RESPONSE:
            self.token_responses += 1
        elif event.type == SimulationEventType.UPDATE_REQUEST:
            self.update_requests += 1
        elif event.type == SimulationEventType.UPDATE_RESPONSE:
            self.update_responses += 1
        elif event.type == SimulationEventType.ERROR:
            self.errors += 1
            self.last_error = str(event.error) if event.error else None

    def snapshot(self) -> dict:
        """Return a thread-safe copy of the counters.

        Returns:
            Dictionary with: token_requests, token_responses, update_requests,
            update_responses, errors, last_error.
        """
        with self._lock:
            return {
                "token_requests": self.token_requests,
                "token_responses": self.token_responses,
                "update_requests": self.update_requests,
                "update_responses": self.update_responses,
                "errors": self.errors,
                "last_error": self.last_error,
            }
