"""Run command: execute a simulation and report its progress."""

import time
from pathlib import Path

import typer

from ...core.models.configuration import SimulationConfiguration
from ...core.models.events import SimulationEvent, SimulationEventType
from ...errors import SimulationConfigurationNotValid
from ...simulation.engine import Simulator
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, format_elapsed, setup_logging


def _print_event(event: SimulationEvent) -> None:
    stamp = f"[dim]{event.timestamp:%H:%M:%S}[/dim]"
    element = f" [cyan]{event.element_id}[/cyan]" if event.element_id else ""
    if event.type == SimulationEventType.ERROR:
        console.print(f"{stamp} [red]error[/red]{element}: {event.error}")
    elif event.type == SimulationEventType.UPDATE_REQUEST:
        url = (event.request or {}).get("url", "")
        console.print(f"{stamp} update-request{element} → {url}")
    elif event.type == SimulationEventType.UPDATE_RESPONSE:
        status = (event.response or {}).get("status", "sent")
        console.print(f"{stamp} [green]update-response[/green]{element} ({status})")
    elif event.type == SimulationEventType.TOKEN_RESPONSE:
        console.print(f"{stamp} token issued, expires at {event.expires_at or 'unknown'}")
    else:
        console.print(f"{stamp} {event.type.value}{element}")


@app.command("run")
def run_command(
    config_file: Path = typer.Argument(..., help="Simulation configuration (JSON or YAML)"),
    duration: float | None = typer.Option(
        None, "--duration", "-d", min=0, help="Stop after this many seconds"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show info-level logs"),
    debug: bool = typer.Option(False, "--debug", help="Show debug-level logs (request bodies)"),
):
    """Run a simulation until every update is sent, it is interrupted, or --duration elapses.

    Examples:
        fdsim run simulation.json
        fdsim run simulation.yaml --duration 60 --verbose
    """
    setup_logging(console, verbose=verbose, debug=debug)
    json_mode = get_json_mode()
    out = Output(console=console, json_mode=json_mode)

    if not config_file.exists():
        out.error(f"File not found: {config_file}", exit_code=ExitCode.FILE_NOT_FOUND)
        raise typer.Exit(out.finish())

    try:
        configuration = SimulationConfiguration.from_file(config_file)
    except SimulationConfigurationNotValid as e:
        out.error(str(e))
        raise typer.Exit(out.finish())
    simulator = Simulator(configuration, duration=duration)

    if not json_mode:
        for event_type in SimulationEventType:
            simulator.progress.on(event_type, _print_event)

    start_time = time.time()
    try:
        summary = simulator.start()
    except KeyboardInterrupt:
        simulator.stop()
        out.error("Simulation interrupted", exit_code=ExitCode.USER_CANCELLED)
        raise typer.Exit(out.finish())

    elapsed = time.time() - start_time
    data = summary.to_dict()
    if summary.stopped_reason == "error":
        out.error(
            f"Simulation aborted: {data.get('last_error') or 'see errors above'}",
            exit_code=ExitCode.SIMULATION_ERROR,
        )
    else:
        out.success(
            f"Simulation {summary.stopped_reason} in {format_elapsed(elapsed)}",
            summary=data,
        )
    out.table(
        "Simulation summary",
        ["Metric", "Value"],
        [
            ["Update requests", str(data["update_requests"])],
            ["Update responses", str(data["update_responses"])],
            ["Errors", str(data["errors"])],
        ],
        data_key="counters",
    )
    raise typer.Exit(out.finish())
