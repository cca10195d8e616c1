"""Runtime configuration for fdsim.

Settings that tune how a simulation talks to the outside world (timeouts,
TLS verification, MQTT keepalive/QoS, token refresh margin, tick concurrency).
What to simulate lives in the simulation document, not here.

Config resolution order (highest priority first):
1. Programmatic (FdsConfig constructed in code and passed to configure())
2. Environment variables (FDS_HTTP_TIMEOUT, FDS_MQTT_QOS, etc.)
3. Config file (~/.config/fdsim/config.json, managed by `fdsim config`)
4. Hardcoded defaults

Credentials are never stored in the config file; the identity manager
password may come from FDS_AUTH_PASSWORD (optionally via a .env file).
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "fdsim"
CONFIG_FILE = CONFIG_DIR / "config.json"


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class HttpConfig:
    """HTTP client settings shared by the NGSI, IoT agent and Keystone clients."""

    timeout: float = 10.0
    verify_tls: bool = True


@dataclass
class MqttConfig:
    """MQTT client settings."""

    keepalive: int = 60
    qos: int = 0
    connect_timeout: float = 10.0


@dataclass
class AuthConfig:
    """Token lifecycle settings."""

    refresh_margin: float = 60.0  # seconds before expiry a token is renewed


@dataclass
class SimulationRuntimeConfig:
    """Engine tuning."""

    max_concurrent_ticks: int = 16


# =============================================================================
# Main config class
# =============================================================================


@dataclass
class FdsConfig:
    """Top-level fdsim configuration.

    Examples:
        # Package use, no files needed
        config = FdsConfig(http=HttpConfig(timeout=2.0))

        # CLI use, loads from ~/.config/fdsim/config.json
        config = FdsConfig.load()
    """

    http: HttpConfig = field(default_factory=HttpConfig)
    mqtt: MqttConfig = field(default_factory=MqttConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    simulation: SimulationRuntimeConfig = field(default_factory=SimulationRuntimeConfig)

    @classmethod
    def load(cls) -> "FdsConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: config file
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError, TypeError, ValueError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: env var overrides
        ensure_dotenv()
        for env_var, section, key in _ENV_OVERRIDES:
            if (val := os.environ.get(env_var)) is None or val == "":
                continue
            target = getattr(config, section)
            try:
                setattr(target, key, _coerce(getattr(target, key), val))
            except ValueError:
                logger.warning("Invalid %s=%r, ignoring", env_var, val)

        return config

    def save(self) -> None:
        """Save config to ~/.config/fdsim/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return asdict(self)

    def set_value(self, dotted_key: str, value: str) -> None:
        """Set a value from a "section.key" path, coercing to the field's type.

        Raises:
            KeyError: If the section or key does not exist
            ValueError: If the value cannot be coerced
        """
        section, _, key = dotted_key.partition(".")
        target = getattr(self, section, None)
        if target is None or not key or key not in {f.name for f in fields(target)}:
            raise KeyError(dotted_key)
        setattr(target, key, _coerce(getattr(target, key), value))


_ENV_OVERRIDES: list[tuple[str, str, str]] = [
    ("FDS_HTTP_TIMEOUT", "http", "timeout"),
    ("FDS_HTTP_VERIFY_TLS", "http", "verify_tls"),
    ("FDS_MQTT_KEEPALIVE", "mqtt", "keepalive"),
    ("FDS_MQTT_QOS", "mqtt", "qos"),
    ("FDS_TOKEN_REFRESH_MARGIN", "auth", "refresh_margin"),
    ("FDS_MAX_CONCURRENT_TICKS", "simulation", "max_concurrent_ticks"),
]

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _coerce(current: Any, raw: Any) -> Any:
    """Coerce raw to the type of the current value."""
    if isinstance(current, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"Expected a boolean, got {raw!r}")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


# =============================================================================
# Config dict application
# =============================================================================


def _apply_dict(config: FdsConfig, data: dict) -> None:
    """Apply a dict of values onto an FdsConfig."""
    for section in ("http", "mqtt", "auth", "simulation"):
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section)
        for k, v in values.items():
            if hasattr(target, k):
                setattr(target, k, _coerce(getattr(target, k), v))


# =============================================================================
# Environment
# =============================================================================

_dotenv_loaded = False


def ensure_dotenv() -> None:
    """Load .env file into os.environ if not already loaded."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        _dotenv_loaded = True
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path=dotenv_path, override=False)


# =============================================================================
# Global config singleton
# =============================================================================

_config: FdsConfig | None = None


def get_config() -> FdsConfig:
    """Get the global FdsConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = FdsConfig.load()
    return _config


def configure(config: FdsConfig) -> None:
    """Set the global FdsConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
