"""Pydantic models for fdsim, organized by domain.

- configuration.py: the simulation document (domain, endpoints, entities, devices)
- events.py: progress events emitted while a simulation runs
"""

from .configuration import (
    AUTH_PASSWORD_ENV,
    # Connection
    Domain,
    Endpoint,
    ContextBroker,
    Authentication,
    IotaProtocol,
    Iota,
    # Entities
    StaticAttribute,
    ActiveAttribute,
    Entity,
    # Devices
    DeviceProtocol,
    DeviceAttribute,
    Device,
    # Document
    SimulationConfiguration,
)
from .events import SimulationEvent, SimulationEventType

__all__ = [
    "AUTH_PASSWORD_ENV",
    "Domain",
    "Endpoint",
    "ContextBroker",
    "Authentication",
    "IotaProtocol",
    "Iota",
    "StaticAttribute",
    "ActiveAttribute",
    "Entity",
    "DeviceProtocol",
    "DeviceAttribute",
    "Device",
    "SimulationConfiguration",
    "SimulationEvent",
    "SimulationEventType",
]
