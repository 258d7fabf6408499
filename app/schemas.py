"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from models.records import NewReading, WeatherReading


class ReadingOut(BaseModel):
    """A stored reading as exposed to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Opaque reading identifier.")
    device_id: str = Field(..., alias="uuid", description="Identifier of the sensor.")
    temperature: float
    pressure: float
    timestamp: datetime

    @classmethod
    def from_record(cls, record: WeatherReading) -> "ReadingOut":
        return cls(
            id=str(record.id),
            device_id=record.device_id,
            temperature=record.temperature,
            pressure=record.pressure,
            timestamp=record.timestamp,
        )

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()


class WeatherDataResponse(BaseModel):
    """Body of ``GET /data``."""

    model_config = ConfigDict(populate_by_name=True)

    latest: Optional[ReadingOut] = Field(default=None, alias="LatestData")
    historical: List[ReadingOut] = Field(default_factory=list, alias="HistoricalData")


class ReadingIn(BaseModel):
    """Body of ``POST /data``.

    ``timestamp`` is accepted so existing firmware can keep sending it, but the
    server clock always wins.
    """

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    device_id: Optional[str] = Field(default=None, alias="uuid", max_length=36)
    temperature: float
    pressure: float
    timestamp: Optional[Any] = None

    def to_new_reading(self) -> NewReading:
        return NewReading(
            temperature=self.temperature,
            pressure=self.pressure,
            device_id=(self.device_id or "").strip(),
        )


class DeviceIdResponse(BaseModel):
    """Returned when the server allocated a device identifier."""

    id: str = Field(..., description="Newly assigned device identifier.")
