"""Validate command for simulation configuration documents."""

from pathlib import Path

import typer

from ...core.models.configuration import SimulationConfiguration
from ...errors import SimulationConfigurationNotValid
from ...simulation.engine import build_groups
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output


@app.command("validate")
def validate_command(
    config_file: Path = typer.Argument(..., help="Simulation configuration (JSON or YAML)"),
):
    """Validate a simulation configuration.

    Checks the document shape and resolves every attribute specification,
    so malformed interpolator calls are reported before a simulation starts.

    Examples:
        fdsim validate simulation.json
        fdsim --json validate simulation.yaml
    """
    out = Output(console=console, json_mode=get_json_mode())

    if not config_file.exists():
        out.error(f"File not found: {config_file}", exit_code=ExitCode.FILE_NOT_FOUND)
        raise typer.Exit(out.finish())

    try:
        configuration = SimulationConfiguration.from_file(config_file)
        groups = build_groups(configuration)
    except SimulationConfigurationNotValid as e:
        out.error(str(e), suggestion="Fix the configuration and validate again")
        raise typer.Exit(out.finish())

    out.success(
        f"{config_file} is valid ({len(groups)} update groups)",
        valid=True,
        entities=len(configuration.entities or []),
        devices=len(configuration.devices or []),
        groups=len(groups),
    )
    out.table(
        "Update groups",
        ["Element", "Schedule", "Attributes"],
        [
            [
                group.element_id,
                group.schedule.text,
                ", ".join(attr.name for attr in group.static + group.attributes),
            ]
            for group in groups
        ],
        data_key="update_groups",
    )
    raise typer.Exit(out.finish())
