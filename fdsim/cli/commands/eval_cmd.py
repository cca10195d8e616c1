"""Eval command: resolve one attribute specification and print its values."""

from datetime import datetime

import typer

from ...errors import InvalidInterpolationSpec, ValueResolutionError
from ...resolver import resolve
from ...utils.clock import now as clock_now
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output


def _moment(at: str | None) -> datetime:
    if at is None:
        return clock_now()
    parsed = datetime.strptime(at, "%H:%M:%S").time()
    return datetime.combine(clock_now().date(), parsed)


@app.command("eval")
def eval_command(
    spec: str = typer.Argument(..., help="Attribute specification, e.g. 'time-linear-interpolator([[0,0],[24,100]])'"),
    times: int = typer.Option(1, "--times", "-n", min=1, help="Number of successive values"),
    at: str | None = typer.Option(None, "--at", help="Wall-clock time HH:MM:SS (default: now)"),
):
    """Evaluate an attribute specification without running a simulation.

    Expressions referencing other entities cannot be evaluated here (there is
    no context broker).

    Examples:
        fdsim eval "time-linear-interpolator([[0,0],[24,100]])" --at 12:00:00
        fdsim eval "/* state: n = 0 */ n = n + 1; {'result': n, 'state': {'n': n}}" --times 3
    """
    out = Output(console=console, json_mode=get_json_mode())

    try:
        moment = _moment(at)
    except ValueError:
        out.error(f"Invalid --at value {at!r}: expected HH:MM:SS")
        raise typer.Exit(out.finish())

    try:
        evaluator = resolve(spec)
        values = [evaluator(now=moment) for _ in range(times)]
    except InvalidInterpolationSpec as e:
        out.error(f"Invalid specification: {e}")
        raise typer.Exit(out.finish())
    except ValueResolutionError as e:
        out.error(f"Cannot resolve value: {e}", exit_code=ExitCode.SIMULATION_ERROR)
        raise typer.Exit(out.finish())

    kind = evaluator.kind.value if evaluator.kind else "expression"
    out.success(f"{kind} at {moment:%H:%M:%S}", kind=kind, values=values)
    for value in values:
        out.text(repr(value))
    raise typer.Exit(out.finish())
