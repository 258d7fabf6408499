"""Retrieval and ingestion orchestration for weather readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, List, Optional

from datastore.weather_store import WeatherStore, build_default_store
from models.records import NewReading, WeatherReading
from services.downsampler import downsample
from services.errors import NoData
from services.identity import DeviceIdentityAllocator
from settings import get_settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WeatherSnapshot:
    """Latest reading plus the downsampled history for a window."""

    latest: Optional[WeatherReading] = None
    historical: List[WeatherReading] = field(default_factory=list)


@dataclass(frozen=True)
class IngestResult:
    reading: WeatherReading
    assigned: bool

    @property
    def device_id(self) -> str:
        return self.reading.device_id


class WeatherService:
    """Coordinates the store, identity allocation, and downsampling."""

    def __init__(
        self,
        store: WeatherStore,
        allocator: DeviceIdentityAllocator,
        clock: Clock = utc_now,
        default_limit: int = 100,
    ) -> None:
        self.store = store
        self.allocator = allocator
        self.clock = clock
        self.default_limit = default_limit

    def latest(self) -> WeatherReading:
        reading = self.store.latest_reading()
        if reading is None:
            raise NoData("No weather data available.")
        return reading

    def history(self, duration: timedelta, limit: int) -> List[WeatherReading]:
        """Readings inside ``[now - duration, now]``, oldest first, downsampled."""
        start = self.clock() - duration
        readings = self.store.readings_since(start)
        sampled = downsample(readings, limit)
        logger.debug(
            "Fetched historical readings.",
            extra={
                "duration_hours": duration.total_seconds() / 3600,
                "limit": limit,
                "row_count": len(readings),
                "returned": len(sampled),
            },
        )
        return sampled

    def snapshot(self, duration: timedelta, limit: int) -> WeatherSnapshot:
        try:
            latest: Optional[WeatherReading] = self.latest()
        except NoData:
            logger.info("No readings stored yet; returning empty snapshot.")
            latest = None
        return WeatherSnapshot(latest=latest, historical=self.history(duration, limit))

    def ingest(self, reading: NewReading) -> IngestResult:
        """Persist a reading, allocating a device id when none was supplied.

        The client timestamp is always replaced by the server clock. The
        given ``reading`` is left untouched.
        """
        timestamp = self.clock()
        device_id = reading.device_id.strip()
        assigned = not device_id
        if assigned:
            device_id = self.allocator.allocate()

        stored = self.store.insert_reading(
            device_id=device_id,
            temperature=reading.temperature,
            pressure=reading.pressure,
            timestamp=timestamp,
        )
        logger.info(
            "Stored reading temperature=%s pressure=%s",
            stored.temperature,
            stored.pressure,
            extra={"device_id": stored.device_id, "reading_id": stored.id},
        )
        return IngestResult(reading=stored, assigned=assigned)


@lru_cache
def build_default_service() -> WeatherService:
    """Factory that wires the service against the configured database."""
    settings = get_settings()
    store = build_default_store()
    allocator = DeviceIdentityAllocator(store, max_attempts=settings.device_id_max_attempts)
    return WeatherService(
        store=store,
        allocator=allocator,
        default_limit=settings.default_history_limit,
    )
