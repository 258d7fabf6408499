from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_data(payload: Dict[str, Any]) -> None:
    latest = payload.get("LatestData")
    echo_heading("Latest Reading")
    if latest:
        echo_key_values(
            [
                ("device", latest.get("uuid")),
                ("temperature", latest.get("temperature")),
                ("pressure", latest.get("pressure")),
                ("timestamp", latest.get("timestamp")),
            ]
        )
    else:
        typer.echo("No readings stored yet.")

    history = payload.get("HistoricalData") or []
    typer.echo()
    echo_heading(f"History ({len(history)} points)")
    for reading in history:
        typer.echo(
            f"  {reading.get('timestamp')}  {reading.get('temperature')!s:>8}  {reading.get('pressure')!s:>8}"
        )
