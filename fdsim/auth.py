"""Authorization tokens from a Keystone v3 identity manager.

Tokens are requested with password credentials scoped to the simulation's
service/subservice, cached, and renewed once they are within the configured
refresh margin of their expiry.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import requests

from .config import get_config
from .core.models.configuration import Authentication, Domain
from .core.models.events import SimulationEvent, SimulationEventType
from .errors import TokenNotAvailable
from .utils.clock import parse_iso
from .utils.redact import sanitize_for_logs

if TYPE_CHECKING:
    from .simulation.progress import SimulationProgress

logger = logging.getLogger(__name__)

TOKENS_PATH = "/v3/auth/tokens"


def build_token_request(authentication: Authentication, domain: Domain) -> dict[str, Any]:
    """Keystone v3 password authentication body scoped to the domain's project."""
    return {
        "auth": {
            "identity": {
                "methods": ["password"],
                "password": {
                    "user": {
                        "domain": {"name": domain.service},
                        "name": authentication.user,
                        "password": authentication.password,
                    }
                },
            },
            "scope": {
                "project": {
                    "domain": {"name": domain.service},
                    "name": domain.subservice,
                }
            },
        }
    }


class TokenManager:
    """Issues and caches the token attached to every simulation request."""

    def __init__(
        self,
        authentication: Authentication | None,
        domain: Domain,
        progress: "SimulationProgress | None" = None,
        session: requests.Session | None = None,
    ):
        self.authentication = authentication
        self.domain = domain
        self.progress = progress
        self.session = session or requests.Session()
        self._token: str | None = None
        self._expires_at: datetime | None = None
        self._lock = threading.Lock()

    @property
    def expires_at(self) -> datetime | None:
        return self._expires_at

    def _emit(self, event: SimulationEvent) -> None:
        if self.progress is not None:
            self.progress.emit(event)

    def _is_fresh(self) -> bool:
        if self._token is None:
            return False
        if self._expires_at is None:
            return True
        margin = timedelta(seconds=get_config().auth.refresh_margin)
        return datetime.now(timezone.utc) + margin < self._expires_at

    def get_token(self) -> str | None:
        """Current token, requesting a new one when missing or about to expire.

        Returns None when the simulation has no authentication configured.

        Raises:
            TokenNotAvailable: If the identity manager does not issue a token
        """
        if self.authentication is None:
            return None
        with self._lock:
            if not self._is_fresh():
                self._request_token()
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = None

    def _request_token(self) -> None:
        config = get_config()
        url = self.authentication.base_url + TOKENS_PATH
        body = build_token_request(self.authentication, self.domain)
        self._emit(
            SimulationEvent(
                type=SimulationEventType.TOKEN_REQUEST,
                request={"method": "POST", "url": url, "body": sanitize_for_logs(body)},
            )
        )
        logger.debug("Requesting token from %s", url)

        try:
            response = self.session.post(
                url,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=config.http.timeout,
                verify=config.http.verify_tls,
            )
        except requests.RequestException as e:
            raise TokenNotAvailable(f"Identity manager at {url} is not available: {e}") from e

        token = response.headers.get("X-Subject-Token")
        if not response.ok or not token:
            raise TokenNotAvailable(
                f"Identity manager at {url} did not issue a token (status {response.status_code})"
            )

        expires_at = None
        try:
            raw_expiry = response.json()["token"]["expires_at"]
            expires_at = parse_iso(raw_expiry).astimezone(timezone.utc)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Token response has no usable expiry (%s); it will not be renewed", e)

        self._token = token
        self._expires_at = expires_at
        logger.info("Token issued, expires at %s", expires_at or "unknown")
        self._emit(
            SimulationEvent(
                type=SimulationEventType.TOKEN_RESPONSE,
                response={"status": response.status_code},
                expires_at=expires_at,
            )
        )
