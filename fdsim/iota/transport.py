"""Delivery of device measures to IoT agents over HTTP or MQTT."""

import logging
import threading
from typing import Any

import paho.mqtt.client as mqtt
import requests

from ..config import get_config
from ..core.models.configuration import Endpoint
from ..errors import MQTTConnectionError, TransportError
from .encoders import CONTENT_TYPES, HTTP_PATHS, encode, mqtt_topic, split_protocol

logger = logging.getLogger(__name__)


class HttpDeviceTransport:
    """Posts measures to the IoT agent's HTTP southbound."""

    def __init__(self, endpoint: Endpoint, encoding: str, session: requests.Session | None = None):
        self.endpoint = endpoint
        self.encoding = encoding
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return self.endpoint.base_url + HTTP_PATHS[self.encoding]

    def describe(self, api_key: str, device_id: str, measures: dict[str, Any]) -> dict[str, Any]:
        return {
            "method": "POST",
            "url": self.url,
            "params": {"k": api_key, "i": device_id},
            "body": encode(self.encoding, measures),
        }

    def send(
        self,
        api_key: str,
        device_id: str,
        measures: dict[str, Any],
        token: str | None = None,
    ) -> dict[str, Any]:
        """Send one measure payload.

        Raises:
            TransportError: On network errors or non-2xx responses
        """
        config = get_config()
        headers = {"Content-Type": CONTENT_TYPES[self.encoding]}
        if token:
            headers["X-Auth-Token"] = token
        try:
            response = self.session.post(
                self.url,
                params={"k": api_key, "i": device_id},
                data=encode(self.encoding, measures),
                headers=headers,
                timeout=config.http.timeout,
                verify=config.http.verify_tls,
            )
        except requests.RequestException as e:
            raise TransportError(f"IoT agent at {self.url} is not available: {e}") from e
        if not response.ok:
            raise TransportError(
                f"IoT agent at {self.url} rejected measures of {device_id} "
                f"(status {response.status_code})"
            )
        return {"status": response.status_code, "body": response.text or None}

    def close(self) -> None:
        self.session.close()


class MqttDeviceTransport:
    """Publishes measures to the IoT agent's MQTT broker.

    The connection is opened lazily on the first publish and kept for the rest
    of the simulation.
    """

    def __init__(self, endpoint: Endpoint, encoding: str, client: mqtt.Client | None = None):
        self.endpoint = endpoint
        self.encoding = encoding
        self._client = client
        self._connected = threading.Event()
        self._connect_error: str | None = None
        self._lock = threading.Lock()

    def describe(self, api_key: str, device_id: str, measures: dict[str, Any]) -> dict[str, Any]:
        return {
            "method": "PUBLISH",
            "url": f"{self.endpoint.base_url}{mqtt_topic(api_key, device_id)}",
            "body": encode(self.encoding, measures),
        }

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            self._connect_error = str(reason_code)
            logger.error("MQTT connection refused: %s", reason_code)
        else:
            logger.info("Connected to MQTT broker %s", self.endpoint.base_url)
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._connected.clear()
        logger.info("Disconnected from MQTT broker (%s)", reason_code)

    def connect(self) -> mqtt.Client:
        """Open the broker connection if it is not open yet.

        Raises:
            MQTTConnectionError: If the broker is unreachable or refuses the connection
        """
        with self._lock:
            if self._client is not None and self._connected.is_set() and not self._connect_error:
                return self._client

            config = get_config()
            if self._client is None:
                self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
            if self.endpoint.protocol == "mqtts":
                self._client.tls_set()

            self._connected.clear()
            self._connect_error = None
            try:
                self._client.connect(
                    self.endpoint.host, self.endpoint.port, keepalive=config.mqtt.keepalive
                )
            except OSError as e:
                raise MQTTConnectionError(
                    f"MQTT broker {self.endpoint.base_url} is not available: {e}"
                ) from e
            self._client.loop_start()

            if not self._connected.wait(timeout=config.mqtt.connect_timeout):
                self._client.loop_stop()
                raise MQTTConnectionError(
                    f"MQTT broker {self.endpoint.base_url} handshake timed out"
                )
            if self._connect_error:
                self._client.loop_stop()
                raise MQTTConnectionError(
                    f"MQTT broker {self.endpoint.base_url} refused the connection: "
                    f"{self._connect_error}"
                )
            return self._client

    def send(
        self,
        api_key: str,
        device_id: str,
        measures: dict[str, Any],
        token: str | None = None,
    ) -> dict[str, Any]:
        """Publish one measure payload and wait until it is delivered.

        Raises:
            TransportError: If the message cannot be published
        """
        config = get_config()
        client = self.connect()
        topic = mqtt_topic(api_key, device_id)
        info = client.publish(topic, encode(self.encoding, measures), qos=config.mqtt.qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(f"Cannot publish to {topic}: {mqtt.error_string(info.rc)}")
        try:
            info.wait_for_publish(timeout=config.mqtt.connect_timeout)
        except (ValueError, RuntimeError) as e:
            raise TransportError(f"Cannot publish to {topic}: {e}") from e
        if not info.is_published():
            raise TransportError(f"Publishing to {topic} timed out")
        return {"topic": topic, "mid": info.mid}

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.disconnect()
                self._client.loop_stop()


def transport_for(protocol: str, endpoint: Endpoint) -> HttpDeviceTransport | MqttDeviceTransport:
    """Build the transport for a device protocol such as "UltraLight::MQTT"."""
    encoding, transport = split_protocol(protocol)
    if transport == "MQTT":
        return MqttDeviceTransport(endpoint, encoding)
    return HttpDeviceTransport(endpoint, encoding)
