"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True, frozen=True)
class WeatherReading:
    """A single persisted weather observation."""

    id: int
    device_id: str
    temperature: float
    pressure: float
    timestamp: datetime


@dataclass(slots=True)
class NewReading:
    """A reading accepted for ingestion but not yet stored.

    ``device_id`` may be empty until identity allocation fills it in, and
    ``timestamp`` is always replaced with the server clock before insert.
    """

    temperature: float
    pressure: float
    device_id: str = ""
    timestamp: Optional[datetime] = None
