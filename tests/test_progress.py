"""Tests for SimulationProgress event emission and counters."""

import threading

import pytest

from fdsim.core.models.events import SimulationEvent, SimulationEventType
from fdsim.simulation.progress import SimulationProgress


def _event(event_type, **kwargs):
    return SimulationEvent(type=event_type, **kwargs)


class TestSimulationProgress:
    """Test SimulationProgress dataclass."""

    def test_initial_state(self):
        """Fresh instance has zero counters."""
        snap = SimulationProgress().snapshot()
        assert snap == {
            "token_requests": 0,
            "token_responses": 0,
            "update_requests": 0,
            "update_responses": 0,
            "errors": 0,
            "last_error": None,
        }

    def test_counters(self):
        p = SimulationProgress()
        p.emit(_event(SimulationEventType.TOKEN_REQUEST))
        p.emit(_event(SimulationEventType.TOKEN_RESPONSE))
        p.emit(_event(SimulationEventType.UPDATE_REQUEST, element_id="E"))
        p.emit(_event(SimulationEventType.UPDATE_RESPONSE, element_id="E"))
        p.emit(_event(SimulationEventType.ERROR, error=ValueError("boom")))
        snap = p.snapshot()
        assert snap["token_requests"] == 1
        assert snap["token_responses"] == 1
        assert snap["update_requests"] == 1
        assert snap["update_responses"] == 1
        assert snap["errors"] == 1
        assert snap["last_error"] == "boom"

    def test_listeners_by_type(self):
        p = SimulationProgress()
        requests, everything = [], []
        p.on("update-request", requests.append)
        for event_type in SimulationEventType:
            p.on(event_type, everything.append)
        p.emit(_event(SimulationEventType.UPDATE_REQUEST))
        p.emit(_event(SimulationEventType.END))
        assert len(requests) == 1
        assert [e.type for e in everything] == [SimulationEventType.UPDATE_REQUEST, SimulationEventType.END]

    def test_off_and_remove_all(self):
        p = SimulationProgress()
        seen = []
        p.on(SimulationEventType.END, seen.append)
        p.off(SimulationEventType.END, seen.append)
        p.emit(_event(SimulationEventType.END))
        p.on(SimulationEventType.END, seen.append)
        p.remove_all_listeners()
        p.emit(_event(SimulationEventType.END))
        assert seen == []

    def test_unknown_event_type(self):
        with pytest.raises(ValueError):
            SimulationProgress().on("nonsense", print)

    def test_failing_listener_does_not_stop_others(self):
        p = SimulationProgress()
        seen = []

        def broken(event):
            raise RuntimeError("listener bug")

        p.on(SimulationEventType.END, broken)
        p.on(SimulationEventType.END, seen.append)
        p.emit(_event(SimulationEventType.END))
        assert len(seen) == 1

    def test_thread_safety(self):
        """Concurrent emits from multiple threads don't corrupt state."""
        p = SimulationProgress()
        n_threads = 10
        n_per_thread = 100

        def worker():
            for _ in range(n_per_thread):
                p.emit(_event(SimulationEventType.UPDATE_RESPONSE))

        threads = [threading.Thread(target=worker) for _ in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert p.snapshot()["update_responses"] == n_threads * n_per_thread
