from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_dashboard


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for reading the room occupancy dashboard.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dashboard API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("rooms")
def rooms_command(ctx: typer.Context) -> None:
    """Show the rooms from the most recent refresh without fetching."""
    state = _get_state(ctx)
    render_dashboard(state.client.get_rooms())


@app.command("refresh")
def refresh_command(ctx: typer.Context) -> None:
    """Ask the service to refresh now and show the result."""
    state = _get_state(ctx)
    typer.echo(f"Refreshing {state.config.base_url} ...")
    payload = state.client.refresh()
    if payload.get("refresh_status") == "skipped":
        typer.secho(
            "A refresh is already in progress; showing the last result.",
            fg=typer.colors.YELLOW,
        )
    elif payload.get("refresh_status") == "empty":
        typer.secho("Refresh succeeded but no rooms have data.", fg=typer.colors.YELLOW)
    else:
        typer.secho("Refresh succeeded.", fg=typer.colors.GREEN)
    typer.echo()
    render_dashboard(payload)
