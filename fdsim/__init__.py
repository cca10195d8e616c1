"""fdsim: FIWARE device simulator.

Simulates context entities (NGSI v1/v2 updates to a context broker) and IoT
devices (UltraLight 2.0 or JSON measures over HTTP or MQTT) whose attribute
values come from interpolators and expressions evaluated on schedules.

Package use:
    from fdsim import Simulator, SimulationConfiguration, resolve

    evaluator = resolve("time-linear-interpolator([[0, 0], [24, 100]])")
    evaluator()

    summary = Simulator(SimulationConfiguration.from_file("simulation.json")).start()
"""

__version__ = "0.3.0"

from .config import FdsConfig, configure, get_config, reset_config
from .core.models import (
    SimulationConfiguration,
    SimulationEvent,
    SimulationEventType,
)
from .errors import (
    FDSError,
    InvalidInterpolationSpec,
    MQTTConnectionError,
    SimulationConfigurationNotValid,
    TokenNotAvailable,
    TransportError,
    ValueResolutionError,
)
from .resolver import AttributeEvaluator, InterpolatorKind, resolve
from .simulation import SimulationProgress, SimulationSummary, Simulator, run_simulation

__all__ = [
    "__version__",
    # Config
    "FdsConfig",
    "configure",
    "get_config",
    "reset_config",
    # Models
    "SimulationConfiguration",
    "SimulationEvent",
    "SimulationEventType",
    # Errors
    "FDSError",
    "InvalidInterpolationSpec",
    "ValueResolutionError",
    "SimulationConfigurationNotValid",
    "TokenNotAvailable",
    "TransportError",
    "MQTTConnectionError",
    # Resolution
    "AttributeEvaluator",
    "InterpolatorKind",
    "resolve",
    # Simulation
    "Simulator",
    "SimulationProgress",
    "SimulationSummary",
    "run_simulation",
]
