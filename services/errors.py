"""Error taxonomy for the weather services."""

from __future__ import annotations


class WeatherServiceError(Exception):
    """Base class for failures raised by the service layer."""


class InvalidInput(WeatherServiceError, ValueError):
    """A request parameter could not be accepted."""


class InvalidDuration(InvalidInput):
    pass


class InvalidLimit(InvalidInput):
    pass


class NoData(WeatherServiceError, LookupError):
    """The store holds no readings at all."""


class StoreFailure(WeatherServiceError):
    """Connecting to, querying, or writing the relational store failed."""


class AllocationExhausted(WeatherServiceError):
    """Every generated device identifier collided with an existing one."""
