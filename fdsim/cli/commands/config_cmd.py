"""Config command for viewing and managing fdsim runtime settings."""

import json
import os

import typer

from ...config import CONFIG_FILE, FdsConfig, get_config, reset_config
from ...core.models.configuration import AUTH_PASSWORD_ENV
from ..app import app, console, get_json_mode


VALID_KEYS = {
    "http.timeout",
    "http.verify_tls",
    "mqtt.keepalive",
    "mqtt.qos",
    "mqtt.connect_timeout",
    "auth.refresh_margin",
    "simulation.max_concurrent_ticks",
}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. http.timeout, mqtt.qos)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify fdsim runtime settings.

    Examples:
        fdsim config show
        fdsim config set http.timeout 5
        fdsim config set http.verify_tls false
        fdsim config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] fdsim config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    if get_json_mode():
        print(json.dumps(config.to_dict(), indent=2))
        return

    console.print()
    console.print("[bold]fdsim Configuration[/bold]")
    console.print("─" * 40)
    for section, values in config.to_dict().items():
        console.print()
        console.print(f"[bold cyan]{section}[/bold cyan]")
        width = max(len(k) for k in values)
        for k, v in values.items():
            console.print(f"  {k.ljust(width)} = {v}")

    console.print()
    password = os.environ.get(AUTH_PASSWORD_ENV)
    status = "[green]set[/green]" if password else "[dim]not set[/dim]"
    console.print(f"{AUTH_PASSWORD_ENV}: {status}")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print("Available keys:")
        for k in sorted(VALID_KEYS):
            console.print(f"  {k}")
        raise typer.Exit(1)

    config = FdsConfig.load()
    try:
        config.set_value(key, value)
    except ValueError:
        console.print(f"[red]Invalid value for {key}:[/red] {value}")
        raise typer.Exit(1)

    config.save()
    reset_config()
    console.print(f"[green]✓[/green] Set {key} = {value}")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        console.print(f"[green]✓[/green] Removed {CONFIG_FILE}")
    else:
        console.print("[dim]No config file to remove[/dim]")
    reset_config()
