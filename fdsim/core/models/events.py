"""Simulation progress events.

Every request the simulator makes is announced before it is sent and its
outcome reported afterwards, so callers can observe a simulation without
reaching into the engine.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SimulationEventType(str, Enum):
    """Kinds of progress events emitted by a running simulation."""

    TOKEN_REQUEST = "token-request"
    TOKEN_RESPONSE = "token-response"
    UPDATE_SCHEDULED = "update-scheduled"
    UPDATE_REQUEST = "update-request"
    UPDATE_RESPONSE = "update-response"
    ERROR = "error"
    STOP = "stop"
    END = "end"


class SimulationEvent(BaseModel):
    """One progress event."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: SimulationEventType
    timestamp: datetime = Field(default_factory=datetime.now)
    element_id: str | None = Field(
        default=None, description="Entity or device id the event concerns"
    )
    schedule: str | None = None
    request: dict[str, Any] | None = Field(
        default=None, description="Outgoing request (method, url, body)"
    )
    response: dict[str, Any] | None = Field(
        default=None, description="Response status and body"
    )
    error: Exception | None = None
    expires_at: datetime | None = Field(
        default=None, description="Expiry of a freshly issued token"
    )
