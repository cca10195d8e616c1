"""Error taxonomy for the device simulator.

Two kinds matter to callers evaluating attribute values:

- InvalidInterpolationSpec: the declarative specification is structurally invalid.
  Raised when the evaluator is built, i.e. when a simulation configuration is accepted.
- ValueResolutionError: evaluating an expression failed at tick time (bad syntax,
  undeclared identifier, missing helper, context broker failure).

The remaining classes cover the simulation plumbing around the interpolators.
"""


class FDSError(Exception):
    """Base class for every error raised by fdsim."""

    pass


class InvalidInterpolationSpec(FDSError):
    """Raised when an interpolation specification is malformed."""

    pass


class ValueResolutionError(FDSError):
    """Raised when an attribute value cannot be resolved at evaluation time."""

    pass


class SimulationConfigurationNotValid(FDSError):
    """Raised when a simulation configuration document is rejected."""

    pass


class TokenNotAvailable(FDSError):
    """Raised when the identity manager does not issue an authorization token."""

    pass


class TransportError(FDSError):
    """Raised when an update cannot be delivered to its destination."""

    pass


class MQTTConnectionError(TransportError):
    """Raised when the MQTT broker connection cannot be established."""

    pass
