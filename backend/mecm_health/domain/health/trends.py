"""Synthesized seven-day trend series.

The management database keeps no history of these ratios, so the
dashboard's trend charts are filled with a short series anchored at the
real current measurement.  This is presentation filler, not
measurement: only the final point is real, and it always equals the
current value exactly.  The six prior points are the current value plus
a bounded random offset.

The random source is injected so tests (and seeded runs) can assert
exact values.
"""

from __future__ import annotations

import random
from datetime import date, timedelta

from ..common.types import Count, Percent
from .models import CountTrendPoint, TrendPoint

TREND_LENGTH = 7

# Offset bounds (inclusive) applied to the prior points, per domain
CLIENT_HEALTH_OFFSETS: tuple[float, float] = (-2.0, 0.0)
COMPLIANCE_OFFSETS: tuple[float, float] = (-3.0, 1.0)


def trend_dates(today: date, length: int = TREND_LENGTH) -> list[str]:
    """*length* consecutive ISO dates ending with *today*."""
    return [
        (today - timedelta(days=length - 1 - i)).isoformat() for i in range(length)
    ]


def synthesize_trend(
    current: float,
    today: date,
    offsets: tuple[float, float],
    rng: random.Random,
) -> tuple[TrendPoint, ...]:
    """Seven {date, percent} points; the last one is *current* unchanged."""
    low, high = offsets
    if low > high:
        raise ValueError(f"Invalid offset range: {offsets}")

    dates = trend_dates(today)
    points = []
    for day in dates[:-1]:
        value = round(min(100.0, max(0.0, current + rng.uniform(low, high))), 1)
        points.append(TrendPoint(date=day, percent=Percent(value)))
    points.append(TrendPoint(date=dates[-1], percent=Percent(current)))
    return tuple(points)


def synthesize_count_trend(
    success: int,
    failed: int,
    in_progress: int,
    today: date,
    rng: random.Random,
) -> tuple[CountTrendPoint, ...]:
    """Seven distribution-count points ending at the current counts.

    Prior success counts lie in [95%, 100%] of the current value; prior
    failed and in-progress counts sit up to 2 and 3 above current.
    """
    dates = trend_dates(today)
    points = [
        CountTrendPoint(
            date=day,
            success=Count(int(success * rng.uniform(0.95, 1.0))),
            failed=Count(failed + rng.randint(0, 2)),
            in_progress=Count(in_progress + rng.randint(0, 3)),
        )
        for day in dates[:-1]
    ]
    points.append(
        CountTrendPoint(
            date=dates[-1],
            success=Count(success),
            failed=Count(failed),
            in_progress=Count(in_progress),
        )
    )
    return tuple(points)


__all__ = [
    "TREND_LENGTH",
    "CLIENT_HEALTH_OFFSETS",
    "COMPLIANCE_OFFSETS",
    "trend_dates",
    "synthesize_trend",
    "synthesize_count_trend",
]
