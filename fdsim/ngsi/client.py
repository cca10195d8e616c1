"""HTTP client for the context broker.

Queries feed the cross-entity references of attribute expressions; updates
carry the simulated attribute values. Both speak NGSI v1 or v2 depending on
the broker's configured version.
"""

import logging
from typing import Any

import requests

from ..config import get_config
from ..core.models.configuration import ContextBroker, Domain
from ..errors import TransportError, ValueResolutionError
from ..utils.redact import sanitize_for_logs
from .payloads import (
    QUERY_PATHS,
    UPDATE_PATHS,
    EntityUpdate,
    build_query_body,
    build_update_body,
    parse_query_response,
)

logger = logging.getLogger(__name__)


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


class ContextBrokerClient:
    """Context broker client bound to one broker and one service scope."""

    def __init__(
        self,
        context_broker: ContextBroker,
        domain: Domain,
        session: requests.Session | None = None,
    ):
        self.context_broker = context_broker
        self.domain = domain
        self.session = session or requests.Session()

    def headers(self, token: str | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Fiware-Service": self.domain.service,
            "Fiware-ServicePath": self.domain.subservice,
        }
        if token:
            headers["X-Auth-Token"] = token
        return headers

    def url(self, path: str) -> str:
        return self.context_broker.base_url + path

    def _post(self, path: str, body: dict[str, Any], token: str | None) -> requests.Response:
        config = get_config()
        url = self.url(path)
        logger.debug("POST %s body=%s", url, sanitize_for_logs(body))
        return self.session.post(
            url,
            json=body,
            headers=self.headers(token),
            timeout=config.http.timeout,
            verify=config.http.verify_tls,
        )

    def query_attributes(
        self,
        entity_id: str,
        entity_type: str | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        """Fetch the current attribute values of an entity.

        Returns:
            Mapping of attribute name to value

        Raises:
            ValueResolutionError: On network errors, non-2xx responses or
                when the entity is not found
        """
        version = self.context_broker.ngsi_version
        body = build_query_body(version, entity_id, entity_type)
        try:
            response = self._post(QUERY_PATHS[version], body, token)
        except requests.RequestException as e:
            raise ValueResolutionError(
                f"Context broker query for entity {entity_id!r} failed: {e}"
            ) from e

        if not response.ok:
            raise ValueResolutionError(
                f"Context broker query for entity {entity_id!r} failed with status "
                f"{response.status_code}"
            )
        payload = _response_body(response)
        logger.debug("Query response for %s: %s", entity_id, sanitize_for_logs(payload))
        try:
            return parse_query_response(version, payload, entity_id)
        except (LookupError, ValueError, TypeError, AttributeError) as e:
            raise ValueResolutionError(
                f"Context broker query for entity {entity_id!r} returned no usable data: {e}"
            ) from e

    def update_request(self, elements: list[EntityUpdate]) -> dict[str, Any]:
        """Describe the update request for elements (used for progress events)."""
        version = self.context_broker.ngsi_version
        return {
            "method": "POST",
            "url": self.url(UPDATE_PATHS[version]),
            "body": build_update_body(version, elements),
        }

    def update(self, elements: list[EntityUpdate], token: str | None = None) -> dict[str, Any]:
        """Send an update (append) for one or more entities.

        Returns:
            {"status": <HTTP status>, "body": <parsed response body or None>}

        Raises:
            TransportError: On network errors or non-2xx responses
        """
        version = self.context_broker.ngsi_version
        body = build_update_body(version, elements)
        try:
            response = self._post(UPDATE_PATHS[version], body, token)
        except requests.RequestException as e:
            raise TransportError(f"Context broker update failed: {e}") from e

        result = {"status": response.status_code, "body": _response_body(response)}
        if not response.ok:
            raise TransportError(
                f"Context broker update failed with status {response.status_code}: "
                f"{sanitize_for_logs(result['body'])}"
            )
        return result
