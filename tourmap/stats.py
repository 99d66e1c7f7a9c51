"""
stats.py – trip totals and the human-readable labels printed on the maps.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

import pandas as pd

from .models import Leg, TripStatistics

logger = logging.getLogger("tourmap.stats")

_QUARTER_HOUR = 15
_UNIT_FACTORS = {"km": 1_000.0, "m": 1.0}


# ────────────────────────────────────────────────────────────────────────────
# Formatting
# ────────────────────────────────────────────────────────────────────────────
def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_to_quarter_hour(minutes: float) -> int:
    """Nearest 15-minute bucket, halves rounded up (7.5 → 15)."""
    return _round_half_up(minutes / _QUARTER_HOUR) * _QUARTER_HOUR


def format_duration(minutes: float) -> str:
    """
    ``61`` → ``"1 hour 0 minutes"``, ``45`` → ``"45 minutes"``,
    ``1500`` → ``"25 hours 0 minutes"``. Zero and negatives give ``"0 minutes"``.
    """
    if minutes is None or not math.isfinite(minutes) or minutes <= 0:
        return "0 minutes"
    rounded = round_to_quarter_hour(minutes)
    if rounded <= 0:
        return "0 minutes"
    hours, rest = divmod(rounded, 60)
    if hours == 0:
        return f"{rest} minutes"
    return f"{hours} hour{'' if hours == 1 else 's'} {rest} minutes"


def format_distance(meters: float, unit: str = "km") -> str:
    """Whole units with a thousands separator (``1_234_567`` m → ``"1,235 km"``)."""
    try:
        factor = _UNIT_FACTORS[unit]
    except KeyError:
        raise ValueError(f"unsupported distance unit {unit!r}") from None
    if meters is None or not math.isfinite(meters) or meters <= 0:
        return f"0 {unit}"
    return f"{_round_half_up(meters / factor):,} {unit}"


# ────────────────────────────────────────────────────────────────────────────
# Aggregation
# ────────────────────────────────────────────────────────────────────────────
def aggregate(legs: Iterable[Leg]) -> TripStatistics:
    """
    Sum distance and duration over resolved legs.

    Legs without a route are not counted as zero: they are left out of the
    sums and reported through ``unresolved_legs``.
    """
    distance = duration = 0.0
    resolved = unresolved = 0
    for leg in legs:
        if leg.resolved:
            distance += leg.distance_meters
            duration += leg.duration_minutes
            resolved += 1
        else:
            unresolved += 1

    stats = TripStatistics(
        total_distance_meters=distance,
        total_duration_minutes=duration,
        resolved_legs=resolved,
        unresolved_legs=unresolved,
    )
    if unresolved:
        logger.warning("%d of %d legs excluded from totals (no route)",
                       unresolved, resolved + unresolved)
    logger.debug("Aggregated %s", stats)
    return stats


def leg_table(legs: Sequence[Leg]) -> pd.DataFrame:
    """One row per leg – the per-leg CSV summary and map label source."""
    rows = [
        dict(
            leg=leg.position + 1,
            origin=leg.origin.name,
            destination=leg.destination.name,
            distance_m=leg.distance_meters,
            duration_min=leg.duration_minutes,
            distance=format_distance(leg.distance_meters) if leg.resolved else "",
            duration=format_duration(leg.duration_minutes) if leg.resolved else "",
            failure=leg.failure or "",
        )
        for leg in legs
    ]
    columns = ["leg", "origin", "destination", "distance_m", "duration_min",
               "distance", "duration", "failure"]
    return pd.DataFrame(rows, columns=columns)


__all__ = [
    "aggregate",
    "format_distance",
    "format_duration",
    "leg_table",
    "round_to_quarter_hour",
]
