"""Even-stride downsampling of ordered readings."""

from __future__ import annotations

from typing import List, Sequence, TypeVar

T = TypeVar("T")


def downsample(points: Sequence[T], limit: int) -> List[T]:
    """Reduce ``points`` to at most ``limit`` items.

    The first and last points are always kept. Interior points are picked at
    ``floor(i * (len - 1) / (limit - 1))`` so the selection is spread evenly
    across the input and depends only on positions, never on values. A limit
    of one keeps just the newest point; zero or less keeps nothing.
    """
    if limit <= 0:
        return []

    total = len(points)
    if total <= limit:
        return list(points)

    if limit == 1:
        return [points[-1]]

    step = (total - 1) / (limit - 1)
    sampled = [points[0]]
    sampled.extend(points[int(i * step)] for i in range(1, limit - 1))
    sampled.append(points[-1])
    return sampled
