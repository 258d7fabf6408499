from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the weather station service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def submit_reading(
        self,
        temperature: float,
        pressure: float,
        device_id: Optional[str] = None,
    ) -> Optional[str]:
        """Post a reading; return the device id if the server assigned one."""
        body: Dict[str, Any] = {"temperature": temperature, "pressure": pressure}
        if device_id:
            body["uuid"] = device_id
        try:
            response = self._client.post("/data", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        if not response.content:
            return None
        assigned = response.json().get("id")
        if not isinstance(assigned, str):
            raise typer.BadParameter("Unexpected response payload when submitting reading.")
        return assigned

    def get_data(self, duration: Optional[str] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if duration:
            params["duration"] = duration
        if limit is not None:
            params["limit"] = limit
        try:
            response = self._client.get("/data", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
        except ValueError:
            detail = exc.response.text.strip()
        else:
            detail = data.get("detail") if isinstance(data, dict) else data
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
