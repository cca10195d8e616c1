"""CLI smoke tests using typer's CliRunner."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

import fdsim.cli.commands.config_cmd as config_cmd
import fdsim.config as config_module
from fdsim import __version__
from fdsim.cli.app import app
from fdsim.ngsi.client import ContextBrokerClient

runner = CliRunner()


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point the config file at a temporary directory."""
    path = tmp_path / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(config_module, "CONFIG_FILE", path)
    monkeypatch.setattr(config_cmd, "CONFIG_FILE", path)
    return path


@pytest.fixture
def simulation_file(tmp_path, simulation_document):
    path = tmp_path / "simulation.json"
    path.write_text(json.dumps(simulation_document))
    return path


class TestConfigCommand:
    """Tests for the config command."""

    def test_config_show(self, config_home):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "http" in result.output
        assert "max_concurrent_ticks" in result.output

    def test_config_show_json(self, config_home):
        result = runner.invoke(app, ["--json", "config", "show"])
        assert result.exit_code == 0
        assert json.loads(result.output)["mqtt"]["qos"] == 0

    def test_config_set(self, config_home):
        result = runner.invoke(app, ["config", "set", "http.timeout", "2.5"])
        assert result.exit_code == 0
        assert json.loads(config_home.read_text())["http"]["timeout"] == 2.5

    def test_config_set_invalid_key(self, config_home):
        result = runner.invoke(app, ["config", "set", "invalid.key", "value"])
        assert result.exit_code == 1
        assert "Unknown key" in result.output

    def test_config_set_invalid_value(self, config_home):
        result = runner.invoke(app, ["config", "set", "mqtt.qos", "abc"])
        assert result.exit_code == 1
        assert "Invalid value" in result.output

    def test_config_set_missing_args(self, config_home):
        result = runner.invoke(app, ["config", "set"])
        assert result.exit_code == 1

    def test_config_reset(self, config_home):
        config_home.write_text("{}")
        result = runner.invoke(app, ["config", "reset"])
        assert result.exit_code == 0
        assert not config_home.exists()

    def test_config_unknown_action(self, config_home):
        result = runner.invoke(app, ["config", "unknown_action"])
        assert result.exit_code == 1
        assert "Unknown action" in result.output


class TestValidateCommand:
    """Tests for the validate command."""

    def test_validate_nonexistent_file(self):
        result = runner.invoke(app, ["validate", "/nonexistent/path.yaml"])
        assert result.exit_code == 3

    def test_validate_valid(self, simulation_file):
        result = runner.invoke(app, ["validate", str(simulation_file)])
        assert result.exit_code == 0
        assert "Room:1" in result.output

    def test_validate_json(self, simulation_file):
        result = runner.invoke(app, ["--json", "validate", str(simulation_file)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["groups"] == 1
        assert data["update_groups"][0]["Element"] == "Room:1"

    def test_validate_invalid_spec(self, tmp_path, simulation_document):
        simulation_document["entities"][0]["active"][0]["value"] = "time-linear-interpolator([[0]])"
        path = tmp_path / "broken.json"
        path.write_text(json.dumps(simulation_document))
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1


class TestEvalCommand:
    """Tests for the eval command."""

    def test_eval_interpolator(self):
        result = runner.invoke(
            app, ["--json", "eval", "time-linear-interpolator([[0, 0], [24, 24]])", "--at", "12:00:00"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["kind"] == "time-linear-interpolator"
        assert data["values"] == [12.0]

    def test_eval_stateful_expression(self):
        result = runner.invoke(
            app,
            ["--json", "eval", "/* state: n = 0 */ n = n + 1\n{'result': n, 'state': {'n': n}}", "-n", "3"],
        )
        assert result.exit_code == 0
        assert json.loads(result.output)["values"] == [1, 2, 3]

    def test_eval_invalid_spec(self):
        result = runner.invoke(app, ["eval", "time-linear-interpolator([[0]])"])
        assert result.exit_code == 1

    def test_eval_unresolvable(self):
        result = runner.invoke(app, ["eval", "undeclared + 1"])
        assert result.exit_code == 6

    def test_eval_invalid_time(self):
        result = runner.invoke(app, ["eval", "1", "--at", "noon"])
        assert result.exit_code == 1


class TestRunCommand:
    """Tests for the run command."""

    def test_run_nonexistent_file(self):
        result = runner.invoke(app, ["run", "/nonexistent/simulation.json"])
        assert result.exit_code == 3

    def test_run_once(self, simulation_file):
        with patch.object(ContextBrokerClient, "update", return_value={"status": 200, "body": None}):
            result = runner.invoke(app, ["--json", "run", str(simulation_file)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["stopped_reason"] == "completed"
        assert data["counters"][0] == {"Metric": "Update requests", "Value": "1"}


class TestVersionFlag:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"fdsim {__version__}" in result.output
