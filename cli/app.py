from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_data
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for running and talking to the weather station service.",
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
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8080).",
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


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind (defaults to SERVICE_HOST)."),
    port: Optional[int] = typer.Option(None, "--port", help="Port to listen on (defaults to SERVICE_PORT or 8080)."),
) -> None:
    """Run the HTTP service."""
    settings = get_settings()
    bind_host = host or settings.host
    bind_port = port or settings.port
    typer.echo(f"Server listening on {bind_host}:{bind_port} ...")
    uvicorn.run("app.main:app", host=bind_host, port=bind_port, log_config=None)


@app.command("submit")
def submit_command(
    ctx: typer.Context,
    temperature: float = typer.Option(..., "--temperature", "-t", help="Temperature reading."),
    pressure: float = typer.Option(..., "--pressure", "-p", help="Pressure reading."),
    device_id: Optional[str] = typer.Option(
        None,
        "--device-id",
        "-d",
        help="Existing device id; omit to have the server assign one.",
    ),
) -> None:
    """Submit a single reading."""
    state = _get_state(ctx)
    assigned = state.client.submit_reading(temperature, pressure, device_id=device_id)
    if assigned:
        typer.secho(f"Reading stored. Assigned device id={assigned}", fg=typer.colors.GREEN)
    else:
        typer.secho("Reading stored.", fg=typer.colors.GREEN)


@app.command("show")
def show_command(
    ctx: typer.Context,
    duration: Optional[str] = typer.Option(None, "--duration", help="Window such as 1h, 24h or 168h."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of history points."),
) -> None:
    """Show the latest reading and recent history."""
    state = _get_state(ctx)
    payload = state.client.get_data(duration=duration, limit=limit)
    render_data(payload)
