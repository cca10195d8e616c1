"""Shared fixtures for fdsim tests."""

import pytest

from fdsim.config import FdsConfig, configure, reset_config


@pytest.fixture(autouse=True)
def default_config():
    """Run every test against default runtime settings, not the user's config file."""
    config = FdsConfig()
    configure(config)
    yield config
    reset_config()


@pytest.fixture
def domain():
    return {"service": "theService", "subservice": "/theSubService"}


@pytest.fixture
def context_broker():
    return {"protocol": "https", "host": "localhost", "port": 1026, "ngsiVersion": "1.0"}


@pytest.fixture
def simulation_document(domain, context_broker):
    """A minimal entity simulation document."""
    return {
        "domain": domain,
        "contextBroker": context_broker,
        "entities": [
            {
                "entity_name": "Room:1",
                "entity_type": "Room",
                "schedule": "once",
                "active": [
                    {
                        "name": "temperature",
                        "type": "Number",
                        "value": "time-linear-interpolator([[0, 0], [24, 24]])",
                    }
                ],
                "staticAttributes": [
                    {"name": "floor", "type": "Number", "value": 3},
                ],
            }
        ],
    }
