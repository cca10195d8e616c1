"""Simulation configuration models.

A SimulationConfiguration is the declarative document an operator writes to
describe what to simulate: where updates go (context broker or IoT agents),
how to authenticate, and which entities/devices report which attributes on
which schedules.

This module contains:
- Connection: Domain, Endpoint, ContextBroker, Authentication, IotaProtocol, Iota
- Entities: StaticAttribute, ActiveAttribute, Entity
- Devices: DeviceAttribute, Device
- Document: SimulationConfiguration with JSON/YAML loading
"""

import json
import os
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from ...config import ensure_dotenv
from ...errors import SimulationConfigurationNotValid
from ..schedule import parse_schedule

AUTH_PASSWORD_ENV = "FDS_AUTH_PASSWORD"

DeviceProtocol = Literal["UltraLight::HTTP", "UltraLight::MQTT", "JSON::HTTP", "JSON::MQTT"]


def _check_schedule(value: str) -> str:
    parse_schedule(value)
    return value


ScheduleText = Annotated[str, AfterValidator(_check_schedule)]


# =============================================================================
# Connection settings
# =============================================================================


class Domain(BaseModel):
    """Multi-tenancy scope of every request (Fiware-Service / Fiware-ServicePath)."""

    service: str = Field(min_length=1)
    subservice: str = Field(min_length=1)


class Endpoint(BaseModel):
    """A network endpoint."""

    protocol: str = Field(min_length=1, description="http, https, mqtt or mqtts")
    host: str = Field(min_length=1)
    port: int = Field(gt=0, lt=65536)

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"


class ContextBroker(Endpoint):
    """Context broker endpoint plus the NGSI version it speaks."""

    model_config = ConfigDict(populate_by_name=True)

    ngsi_version: Literal["1.0", "2.0"] = Field(alias="ngsiVersion")

    @field_validator("ngsi_version", mode="before")
    @classmethod
    def _normalize_version(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return f"{float(value):.1f}"
        if value in ("1", "2"):
            return f"{value}.0"
        return value


class Authentication(Endpoint):
    """Identity manager (Keystone v3) endpoint and credentials."""

    user: str = Field(min_length=1)
    password: str | None = Field(
        default=None,
        description=f"Falls back to the {AUTH_PASSWORD_ENV} environment variable",
    )

    @model_validator(mode="after")
    def _resolve_password(self) -> "Authentication":
        if not self.password:
            ensure_dotenv()
            self.password = os.environ.get(AUTH_PASSWORD_ENV) or None
        if not self.password:
            raise ValueError(
                f"authentication.password is required (or set {AUTH_PASSWORD_ENV})"
            )
        return self


class IotaProtocol(BaseModel):
    """IoT agent endpoints for one payload encoding."""

    api_key: str | None = None
    http: Endpoint | None = None
    mqtt: Endpoint | None = None


class Iota(BaseModel):
    """IoT agents, keyed by payload encoding."""

    model_config = ConfigDict(populate_by_name=True)

    ultralight: IotaProtocol | None = None
    json_: IotaProtocol | None = Field(default=None, alias="json")

    def for_protocol(self, protocol: str) -> tuple[IotaProtocol | None, Endpoint | None]:
        """Return the encoding block and transport endpoint for a device protocol."""
        encoding, _, transport = protocol.partition("::")
        block = self.ultralight if encoding == "UltraLight" else self.json_
        if block is None:
            return None, None
        return block, block.http if transport == "HTTP" else block.mqtt


# =============================================================================
# Entities
# =============================================================================


class StaticAttribute(BaseModel):
    """An attribute whose specification is sent with every update of its entity."""

    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    value: Any = Field(description="Literal, interpolator call or expression")

    @field_validator("value")
    @classmethod
    def _value_present(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("value is required")
        return value


class ActiveAttribute(StaticAttribute):
    """An attribute updated on its own schedule (or the entity's)."""

    schedule: ScheduleText | None = None


class Entity(BaseModel):
    """One context entity, or `count` entities sharing the same description."""

    model_config = ConfigDict(populate_by_name=True)

    entity_name: str | None = Field(default=None, min_length=1)
    count: int | None = Field(default=None, ge=1)
    entity_type: str = Field(min_length=1)
    schedule: ScheduleText = "once"
    active: list[ActiveAttribute] | None = None
    static_attributes: list[StaticAttribute] | None = Field(
        default=None, alias="staticAttributes"
    )

    @model_validator(mode="after")
    def _check_shape(self) -> "Entity":
        if self.entity_name is None and self.count is None:
            raise ValueError("entity_name or count is required")
        if self.active is not None and not self.active:
            raise ValueError("active attributes must not be empty")
        if self.static_attributes is not None and not self.static_attributes:
            raise ValueError("staticAttributes must not be empty")
        if not self.active and not self.static_attributes:
            raise ValueError("active or staticAttributes are required")
        return self

    def ids(self) -> list[str]:
        """Entity ids this description expands to."""
        if self.count is None:
            return [self.entity_name]
        prefix = self.entity_name or self.entity_type
        return [f"{prefix}:{i}" for i in range(1, self.count + 1)]


# =============================================================================
# Devices
# =============================================================================


class DeviceAttribute(BaseModel):
    """A device measure, identified by its IoT agent object id."""

    object_id: str = Field(min_length=1)
    value: Any = Field(description="Literal, interpolator call or expression")
    schedule: ScheduleText | None = None

    @field_validator("value")
    @classmethod
    def _value_present(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("value is required")
        return value


class Device(BaseModel):
    """One IoT device, or `count` devices sharing the same description."""

    device_id: str | None = Field(default=None, min_length=1)
    count: int | None = Field(default=None, ge=1)
    protocol: DeviceProtocol
    api_key: str | None = None
    schedule: ScheduleText = "once"
    attributes: list[DeviceAttribute] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_identity(self) -> "Device":
        if self.device_id is None and self.count is None:
            raise ValueError("device_id or count is required")
        return self

    def ids(self) -> list[str]:
        """Device ids this description expands to."""
        if self.count is None:
            return [self.device_id]
        prefix = self.device_id or "device"
        return [f"{prefix}:{i}" for i in range(1, self.count + 1)]


# =============================================================================
# Document
# =============================================================================


class SimulationConfiguration(BaseModel):
    """A complete simulation document."""

    model_config = ConfigDict(populate_by_name=True)

    domain: Domain
    context_broker: ContextBroker | None = Field(default=None, alias="contextBroker")
    authentication: Authentication | None = None
    iota: Iota | None = None
    entities: list[Entity] | None = None
    devices: list[Device] | None = None

    @model_validator(mode="after")
    def _check_targets(self) -> "SimulationConfiguration":
        if self.entities is not None and not self.entities:
            raise ValueError("entities must not be empty")
        if self.devices is not None and not self.devices:
            raise ValueError("devices must not be empty")
        if not self.entities and not self.devices:
            raise ValueError("entities or devices are required")
        if self.entities and self.context_broker is None:
            raise ValueError("contextBroker is required to simulate entities")
        for device in self.devices or []:
            self._check_device_target(device)
        return self

    def _check_device_target(self, device: Device) -> None:
        if self.iota is None:
            raise ValueError("iota is required to simulate devices")
        block, endpoint = self.iota.for_protocol(device.protocol)
        if endpoint is None:
            raise ValueError(f"no IoT agent endpoint configured for {device.protocol}")
        if not (device.api_key or block.api_key):
            raise ValueError(f"api_key is required for device {device.device_id or device.count}")

    def api_key_for(self, device: Device) -> str:
        block, _ = self.iota.for_protocol(device.protocol)
        return device.api_key or block.api_key

    @classmethod
    def from_dict(cls, data: Any) -> "SimulationConfiguration":
        """Validate a parsed document.

        Raises:
            SimulationConfigurationNotValid: If the document is rejected
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SimulationConfigurationNotValid(str(e)) from e

    @classmethod
    def from_file(cls, path: Path | str) -> "SimulationConfiguration":
        """Load a JSON or YAML document.

        Raises:
            SimulationConfigurationNotValid: If the file cannot be parsed or is rejected
        """
        path = Path(path)
        try:
            text = path.read_text()
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise SimulationConfigurationNotValid(f"Cannot read {path}: {e}") from e
        return cls.from_dict(data)
