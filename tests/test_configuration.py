"""Tests for simulation configuration models and schedules."""

import json

import pytest

from fdsim.core.models import SimulationConfiguration
from fdsim.core.models.configuration import Authentication, ContextBroker, Device, Entity
from fdsim.core.schedule import ONCE, parse_schedule
from fdsim.errors import SimulationConfigurationNotValid


@pytest.fixture
def iota():
    return {
        "ultralight": {
            "api_key": "ul-key",
            "http": {"protocol": "http", "host": "localhost", "port": 7896},
            "mqtt": {"protocol": "mqtt", "host": "localhost", "port": 1883},
        },
        "json": {"http": {"protocol": "http", "host": "localhost", "port": 7897}},
    }


class TestParseSchedule:
    @pytest.mark.parametrize("text", [None, "once", " ONCE "])
    def test_once(self, text):
        schedule = parse_schedule(text)
        assert schedule.once
        assert schedule.text == ONCE

    @pytest.mark.parametrize(
        "text,interval",
        [
            ("every 5 seconds", 5),
            ("every 1 second", 1),
            ("every 2 minutes", 120),
            ("Every 1 Hour", 3600),
            ("*/5 * * * * *", 5),
            ("*/10 * * * *", 600),
        ],
    )
    def test_repeating(self, text, interval):
        schedule = parse_schedule(text)
        assert not schedule.once
        assert schedule.interval == interval

    @pytest.mark.parametrize("text", ["sometimes", "every 0 seconds", "*/0 * * * * *", "every 5 days", ""])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_schedule(text)


class TestConnectionModels:
    def test_context_broker_version_normalized(self):
        broker = ContextBroker.model_validate(
            {"protocol": "http", "host": "cb", "port": 1026, "ngsiVersion": 2}
        )
        assert broker.ngsi_version == "2.0"
        assert broker.base_url == "http://cb:1026"

    def test_context_broker_unknown_version(self):
        with pytest.raises(ValueError):
            ContextBroker.model_validate(
                {"protocol": "http", "host": "cb", "port": 1026, "ngsiVersion": "3.0"}
            )

    def test_password_from_environment(self, monkeypatch):
        monkeypatch.setenv("FDS_AUTH_PASSWORD", "s3cret")
        auth = Authentication.model_validate(
            {"protocol": "http", "host": "keystone", "port": 5001, "user": "admin"}
        )
        assert auth.password == "s3cret"

    def test_password_required(self, monkeypatch):
        monkeypatch.setenv("FDS_AUTH_PASSWORD", "")
        with pytest.raises(ValueError):
            Authentication.model_validate(
                {"protocol": "http", "host": "keystone", "port": 5001, "user": "admin"}
            )


class TestEntity:
    def test_ids_from_name(self):
        entity = Entity.model_validate(
            {"entity_name": "Room:1", "entity_type": "Room", "staticAttributes": [{"name": "a", "type": "T", "value": 1}]}
        )
        assert entity.ids() == ["Room:1"]
        assert entity.schedule == "once"

    def test_ids_from_count(self):
        entity = Entity.model_validate(
            {"count": 3, "entity_type": "Room", "active": [{"name": "a", "type": "T", "value": 1}]}
        )
        assert entity.ids() == ["Room:1", "Room:2", "Room:3"]

    @pytest.mark.parametrize(
        "data",
        [
            {"entity_type": "Room", "active": [{"name": "a", "type": "T", "value": 1}]},
            {"entity_name": "R", "entity_type": "Room"},
            {"entity_name": "R", "entity_type": "Room", "active": []},
            {"entity_name": "R", "entity_type": "Room", "active": [{"name": "a", "type": "T"}]},
            {"entity_name": "R", "entity_type": "Room", "schedule": "never", "active": [{"name": "a", "type": "T", "value": 1}]},
            {
                "entity_name": "R",
                "entity_type": "Room",
                "active": [{"name": "a", "type": "T", "value": 1, "schedule": "every -1 seconds"}],
            },
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ValueError):
            Entity.model_validate(data)


class TestDevice:
    def test_ids_from_count(self):
        device = Device.model_validate(
            {"count": 2, "protocol": "UltraLight::HTTP", "attributes": [{"object_id": "t", "value": 1}]}
        )
        assert device.ids() == ["device:1", "device:2"]

    def test_unknown_protocol(self):
        with pytest.raises(ValueError):
            Device.model_validate(
                {"device_id": "d", "protocol": "LoRa::HTTP", "attributes": [{"object_id": "t", "value": 1}]}
            )


class TestSimulationConfiguration:
    def test_entities(self, simulation_document):
        configuration = SimulationConfiguration.from_dict(simulation_document)
        assert configuration.context_broker.ngsi_version == "1.0"
        assert configuration.entities[0].active[0].name == "temperature"

    def test_entities_need_a_broker(self, simulation_document):
        del simulation_document["contextBroker"]
        with pytest.raises(SimulationConfigurationNotValid):
            SimulationConfiguration.from_dict(simulation_document)

    def test_nothing_to_simulate(self, domain, context_broker):
        with pytest.raises(SimulationConfigurationNotValid):
            SimulationConfiguration.from_dict({"domain": domain, "contextBroker": context_broker})

    def test_devices(self, domain, iota):
        configuration = SimulationConfiguration.from_dict(
            {
                "domain": domain,
                "iota": iota,
                "devices": [
                    {"device_id": "d1", "protocol": "UltraLight::MQTT", "attributes": [{"object_id": "t", "value": 1}]},
                    {
                        "device_id": "d2",
                        "protocol": "JSON::HTTP",
                        "api_key": "json-key",
                        "attributes": [{"object_id": "t", "value": 1}],
                    },
                ],
            }
        )
        first, second = configuration.devices
        assert configuration.api_key_for(first) == "ul-key"
        assert configuration.api_key_for(second) == "json-key"

    def test_device_without_endpoint(self, domain, iota):
        with pytest.raises(SimulationConfigurationNotValid):
            SimulationConfiguration.from_dict(
                {
                    "domain": domain,
                    "iota": iota,
                    "devices": [
                        {"device_id": "d", "protocol": "JSON::MQTT", "api_key": "k", "attributes": [{"object_id": "t", "value": 1}]}
                    ],
                }
            )

    def test_device_without_api_key(self, domain, iota):
        with pytest.raises(SimulationConfigurationNotValid):
            SimulationConfiguration.from_dict(
                {
                    "domain": domain,
                    "iota": iota,
                    "devices": [{"device_id": "d", "protocol": "JSON::HTTP", "attributes": [{"object_id": "t", "value": 1}]}],
                }
            )

    def test_from_json_file(self, tmp_path, simulation_document):
        path = tmp_path / "simulation.json"
        path.write_text(json.dumps(simulation_document))
        assert SimulationConfiguration.from_file(path).domain.service == "theService"

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "simulation.yaml"
        path.write_text(
            "domain: {service: s, subservice: /ss}\n"
            "contextBroker: {protocol: http, host: cb, port: 1026, ngsiVersion: '2.0'}\n"
            "entities:\n"
            "  - entity_name: E1\n"
            "    entity_type: T\n"
            "    schedule: every 5 seconds\n"
            "    active:\n"
            "      - {name: a, type: Number, value: 1}\n"
        )
        configuration = SimulationConfiguration.from_file(path)
        assert configuration.entities[0].schedule == "every 5 seconds"

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SimulationConfigurationNotValid):
            SimulationConfiguration.from_file(path)
