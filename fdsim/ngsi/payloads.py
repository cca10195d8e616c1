"""NGSI v1 / v2 request bodies and response parsing.

Update bodies:
- v1: POST /v1/updateContext {"contextElements": [...], "updateAction": "APPEND"}
- v2: POST /v2/op/update {"actionType": "append", "entities": [...]}

Query bodies:
- v1: POST /v1/queryContext {"entities": [{"id", "type"?, "isPattern": "false"}]}
- v2: POST /v2/op/query?options=keyValues {"entities": [{"id", "type"?}]}
"""

from dataclasses import dataclass, field
from typing import Any

NGSI_V1 = "1.0"
NGSI_V2 = "2.0"

UPDATE_PATHS = {NGSI_V1: "/v1/updateContext", NGSI_V2: "/v2/op/update"}
QUERY_PATHS = {NGSI_V1: "/v1/queryContext", NGSI_V2: "/v2/op/query?options=keyValues"}


@dataclass
class AttributeValue:
    """A resolved attribute ready to be sent."""

    name: str
    type: str
    value: Any


@dataclass
class EntityUpdate:
    """All attribute values of one entity sent in one update request."""

    entity_id: str
    entity_type: str
    attributes: list[AttributeValue] = field(default_factory=list)


# =============================================================================
# Updates
# =============================================================================


def build_update_body(version: str, elements: list[EntityUpdate]) -> dict[str, Any]:
    """Build the update request body for an NGSI version."""
    if version == NGSI_V1:
        return {
            "contextElements": [
                {
                    "id": element.entity_id,
                    "type": element.entity_type,
                    "isPattern": "false",
                    "attributes": [
                        {"name": attr.name, "type": attr.type, "value": attr.value}
                        for attr in element.attributes
                    ],
                }
                for element in elements
            ],
            "updateAction": "APPEND",
        }

    entities = []
    for element in elements:
        entity: dict[str, Any] = {"id": element.entity_id, "type": element.entity_type}
        for attr in element.attributes:
            entity[attr.name] = {"type": attr.type, "value": attr.value}
        entities.append(entity)
    return {"actionType": "append", "entities": entities}


# =============================================================================
# Queries
# =============================================================================


def build_query_body(version: str, entity_id: str, entity_type: str | None) -> dict[str, Any]:
    """Build the query request body for one entity."""
    entity: dict[str, Any] = {"id": entity_id}
    if entity_type:
        entity["type"] = entity_type
    if version == NGSI_V1:
        entity["isPattern"] = "false"
    return {"entities": [entity]}


def parse_query_response(version: str, body: Any, entity_id: str) -> dict[str, Any]:
    """Extract {attribute name: value} for entity_id from a query response.

    Raises:
        LookupError: If the entity is not part of the response
        ValueError: If the response does not have the expected shape
    """
    if version == NGSI_V1:
        if not isinstance(body, dict) or not isinstance(body.get("contextResponses"), list):
            raise ValueError("Unexpected queryContext response: 'contextResponses' missing")
        for response in body["contextResponses"]:
            element = (response or {}).get("contextElement") or {}
            if element.get("id") == entity_id:
                return {
                    attr["name"]: attr.get("value")
                    for attr in element.get("attributes") or []
                    if "name" in attr
                }
        raise LookupError(f"Entity {entity_id!r} not found")

    if not isinstance(body, list):
        raise ValueError("Unexpected query response: a list of entities is required")
    for entity in body:
        if isinstance(entity, dict) and entity.get("id") == entity_id:
            return {k: v for k, v in entity.items() if k not in ("id", "type")}
    raise LookupError(f"Entity {entity_id!r} not found")
