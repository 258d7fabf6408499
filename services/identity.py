"""Allocation of server-assigned device identifiers."""

from __future__ import annotations

import logging
from typing import Callable, Protocol
from uuid import uuid4

from services.errors import AllocationExhausted, StoreFailure

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class DeviceIdLookup(Protocol):
    def device_id_exists(self, device_id: str) -> bool: ...


def _new_device_id() -> str:
    return str(uuid4())


class DeviceIdentityAllocator:
    """Generates device identifiers that are not yet present in the store.

    Allocation is check-then-use: a candidate is only compared against stored
    readings and nothing is reserved, so two concurrent allocations may accept
    the same candidate before either reading is persisted. With random UUIDs
    that collision is negligible. When the existence check itself fails the
    candidate is accepted as unused and a warning is logged.
    """

    def __init__(
        self,
        lookup: DeviceIdLookup,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        id_factory: Callable[[], str] = _new_device_id,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.lookup = lookup
        self.max_attempts = max_attempts
        self._id_factory = id_factory

    def allocate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._id_factory()
            if not self._is_taken(candidate, attempt):
                return candidate
            logger.info(
                "Generated device id already in use; retrying.",
                extra={"device_id": candidate, "attempt": attempt},
            )

        raise AllocationExhausted(
            f"Could not allocate an unused device id after {self.max_attempts} attempts."
        )

    def _is_taken(self, candidate: str, attempt: int) -> bool:
        try:
            return self.lookup.device_id_exists(candidate)
        except StoreFailure as exc:
            logger.warning(
                "Device id existence check failed; treating candidate as unused.",
                extra={"device_id": candidate, "attempt": attempt, "reason": str(exc)},
            )
            return False
