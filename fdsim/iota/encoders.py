"""Measure payload encodings understood by the IoT agents.

UltraLight 2.0 joins `object_id|value` pairs with `#`; JSON sends an object
keyed by object id.
"""

import json
from typing import Any, Literal

Encoding = Literal["UltraLight", "JSON"]

CONTENT_TYPES: dict[str, str] = {
    "UltraLight": "text/plain",
    "JSON": "application/json",
}

HTTP_PATHS: dict[str, str] = {
    "UltraLight": "/iot/d",
    "JSON": "/iot/json",
}


def ultralight_value(value: Any) -> str:
    """Render one measure value for an UltraLight payload."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None or isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def encode_ultralight(measures: dict[str, Any]) -> str:
    """Example: {"t": 21.5, "h": 40} -> "t|21.5#h|40"."""
    return "#".join(f"{object_id}|{ultralight_value(value)}" for object_id, value in measures.items())


def encode_json(measures: dict[str, Any]) -> str:
    return json.dumps(measures)


def encode(encoding: str, measures: dict[str, Any]) -> str:
    """Encode measures for a device protocol's payload encoding."""
    if encoding == "UltraLight":
        return encode_ultralight(measures)
    if encoding == "JSON":
        return encode_json(measures)
    raise ValueError(f"Unknown payload encoding {encoding!r}")


def split_protocol(protocol: str) -> tuple[str, str]:
    """Split a device protocol: "UltraLight::MQTT" -> ("UltraLight", "MQTT")."""
    encoding, _, transport = protocol.partition("::")
    return encoding, transport


def mqtt_topic(api_key: str, device_id: str) -> str:
    return f"/{api_key}/{device_id}/attrs"
