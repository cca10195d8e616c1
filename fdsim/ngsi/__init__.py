"""NGSI (context broker) payloads and client."""

from .client import ContextBrokerClient
from .payloads import (
    NGSI_V1,
    NGSI_V2,
    AttributeValue,
    EntityUpdate,
    build_query_body,
    build_update_body,
    parse_query_response,
)

__all__ = [
    "ContextBrokerClient",
    "NGSI_V1",
    "NGSI_V2",
    "AttributeValue",
    "EntityUpdate",
    "build_query_body",
    "build_update_body",
    "parse_query_response",
]
