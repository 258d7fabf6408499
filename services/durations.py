"""Query-parameter parsing for the history window and point limit."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Optional

from services.errors import InvalidDuration, InvalidLimit

DEFAULT_DURATION = timedelta(hours=1)
DEFAULT_LIMIT = 100

# Matches the preset windows offered by the dashboard.
ALLOWED_HOURS = frozenset({1, 12, 24, 72, 120, 168})

_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_duration(token: Optional[str]) -> timedelta:
    """Translate a ``duration`` token such as ``"24"`` or ``"24h"`` into a window.

    A missing or blank token selects the one hour default. Anything that is not
    one of the preset hour counts raises :class:`InvalidDuration`.
    """
    candidate = (token or "").strip()
    if not candidate:
        return DEFAULT_DURATION

    if candidate.endswith("h"):
        candidate = candidate[:-1]

    if not _INTEGER.fullmatch(candidate):
        raise InvalidDuration(f"Invalid duration value: {token!r}")
    hours = int(candidate)

    if hours not in ALLOWED_HOURS:
        raise InvalidDuration(f"Invalid duration value: {hours}")
    return timedelta(hours=hours)


def parse_limit(token: Optional[str], default: int = DEFAULT_LIMIT) -> int:
    candidate = (token or "").strip()
    if not candidate:
        return default
    if not _INTEGER.fullmatch(candidate):
        raise InvalidLimit(f"Invalid limit value: {token!r}")
    limit = int(candidate)
    if limit < 1:
        raise InvalidLimit(f"Limit must be positive, got {limit}")
    return limit
