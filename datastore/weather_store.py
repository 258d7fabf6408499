from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import DateTime, Float, Integer, String, create_engine, exists, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from models.records import WeatherReading
from services.errors import StoreFailure
from settings import get_settings

T = TypeVar("T")


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime column that always round-trips as UTC.

    SQLite drops the offset on write, so values are normalised to UTC before
    binding and tagged as UTC again when loaded.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class WeatherDataRow(Base):
    __tablename__ = "weather_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    pressure: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    def to_record(self) -> WeatherReading:
        return WeatherReading(
            id=self.id,
            device_id=self.device_id,
            temperature=self.temperature,
            pressure=self.pressure,
            timestamp=self.timestamp,
        )


class WeatherStore:
    """Relational persistence for weather readings.

    Every public call opens its own session and commits on its own; nothing
    spans more than one round trip.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @property
    def url(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    def ensure_schema(self) -> None:
        """Create the readings table if it does not exist yet."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreFailure("Failed to create schema.") from exc

    def insert_reading(
        self,
        device_id: str,
        temperature: float,
        pressure: float,
        timestamp: datetime,
    ) -> WeatherReading:
        def _insert(session: Session) -> WeatherReading:
            row = WeatherDataRow(
                device_id=device_id,
                temperature=temperature,
                pressure=pressure,
                timestamp=timestamp,
            )
            session.add(row)
            session.commit()
            return row.to_record()

        return self._run(_insert, "insert reading")

    def latest_reading(self) -> Optional[WeatherReading]:
        def _latest(session: Session) -> Optional[WeatherReading]:
            stmt = (
                select(WeatherDataRow)
                .order_by(WeatherDataRow.timestamp.desc(), WeatherDataRow.id.desc())
                .limit(1)
            )
            row = session.scalars(stmt).first()
            return row.to_record() if row is not None else None

        return self._run(_latest, "fetch latest reading")

    def readings_since(self, start: datetime) -> list[WeatherReading]:
        """Return readings at or after ``start``, oldest first."""

        def _since(session: Session) -> list[WeatherReading]:
            stmt = (
                select(WeatherDataRow)
                .where(WeatherDataRow.timestamp >= start)
                .order_by(WeatherDataRow.timestamp.asc(), WeatherDataRow.id.asc())
            )
            return [row.to_record() for row in session.scalars(stmt)]

        return self._run(_since, "fetch historical readings")

    def device_id_exists(self, device_id: str) -> bool:
        def _exists(session: Session) -> bool:
            stmt = select(exists().where(WeatherDataRow.device_id == device_id))
            return bool(session.scalar(stmt))

        return self._run(_exists, "check device id")

    def dispose(self) -> None:
        self.engine.dispose()

    def _run(self, operation: Callable[[Session], T], action: str) -> T:
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                return operation(session)
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Failed to {action}.") from exc


def build_engine(database_url: str, timeout: Optional[float] = None) -> Engine:
    """Create an engine whose connects and pool checkouts give up after ``timeout`` seconds."""
    url = make_url(database_url)
    backend = url.get_backend_name()
    options: dict[str, Any] = {}
    connect_args: dict[str, Any] = {}

    if backend == "sqlite":
        connect_args["check_same_thread"] = False
        if timeout is not None:
            connect_args["timeout"] = timeout
        if not url.database or url.database == ":memory:":
            # One shared connection, otherwise every checkout sees an empty database.
            options["poolclass"] = StaticPool
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    elif backend == "postgresql" and timeout is not None:
        connect_args["connect_timeout"] = max(1, int(timeout))

    if timeout is not None and "poolclass" not in options:
        options["pool_timeout"] = timeout
    return create_engine(url, connect_args=connect_args, **options)


@lru_cache
def build_default_store(database_url: Optional[str] = None) -> WeatherStore:
    settings = get_settings()
    url = settings.database_url if database_url is None else database_url
    return WeatherStore(engine=build_engine(url, timeout=settings.database_timeout))
