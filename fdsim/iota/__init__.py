"""IoT agent payload encodings and transports."""

from .encoders import encode, encode_json, encode_ultralight, mqtt_topic, split_protocol
from .transport import HttpDeviceTransport, MqttDeviceTransport, transport_for

__all__ = [
    "encode",
    "encode_json",
    "encode_ultralight",
    "mqtt_topic",
    "split_protocol",
    "HttpDeviceTransport",
    "MqttDeviceTransport",
    "transport_for",
]
