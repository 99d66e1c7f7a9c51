"""
legs.py – pair consecutive stops into legs and carve out single days.

Day numbers are 1-based and refer to stop positions (``sequence_index + 1``):
day *d* is the stretch between the *d*-th and the *(d+1)*-th stop.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .errors import InsufficientStops
from .models import Leg, Stop

log = logging.getLogger("tourmap.legs")

Bounds = Tuple[float, float, float, float]


def build_legs(stops: Sequence[Stop]) -> List[Leg]:
    """
    One leg per adjacent pair of stops, in input order.

    0 or 1 stops is an empty trip, not an error.  Stops must already be
    densely numbered (unresolved ones dropped before this point), otherwise
    a leg would silently jump over a missing stop.
    """
    for expected, stop in enumerate(stops):
        if stop.sequence_index != expected:
            raise ValueError(
                f"stop {stop.name!r} has sequence_index {stop.sequence_index}, "
                f"expected {expected} – renumber stops before building legs"
            )
        if not stop.resolved:
            raise ValueError(f"stop {stop.name!r} has no location")

    legs = [Leg(origin=a, destination=b) for a, b in zip(stops, stops[1:])]
    log.debug("Built %d legs from %d stops", len(legs), len(stops))
    return legs


def require_legs(stops: Sequence[Stop]) -> List[Leg]:
    """Like :func:`build_legs`, but a trip without legs is fatal."""
    if len(stops) < 2:
        raise InsufficientStops(
            f"need at least 2 geocoded stops to build a route, got {len(stops)}"
        )
    return build_legs(stops)


def select_day(legs: Sequence[Leg], day: int) -> List[Leg]:
    """Legs whose both endpoints sit at stop positions ``day`` or ``day + 1``."""
    window = {day, day + 1}
    return [
        leg for leg in legs
        if leg.origin.sequence_index + 1 in window
        and leg.destination.sequence_index + 1 in window
    ]


def day_bounds(legs: Sequence[Leg], pad: float = 0.0) -> Optional[Bounds]:
    """
    Bounding box ``(minx, miny, maxx, maxy)`` over the legs' stops and routes.

    ``pad`` widens each side by that fraction of the larger box dimension.
    Returns ``None`` for an empty selection.
    """
    xs: list[float] = []
    ys: list[float] = []
    for leg in legs:
        for stop in (leg.origin, leg.destination):
            if stop.point is not None:
                xs.append(stop.point.x)
                ys.append(stop.point.y)
        if leg.route_geometry is not None and not leg.route_geometry.is_empty:
            minx, miny, maxx, maxy = leg.route_geometry.bounds
            xs.extend((minx, maxx))
            ys.extend((miny, maxy))
    if not xs:
        return None

    minx, miny, maxx, maxy = min(xs), min(ys), max(xs), max(ys)
    margin = max(maxx - minx, maxy - miny) * pad
    return minx - margin, miny - margin, maxx + margin, maxy + margin


__all__ = ["build_legs", "require_legs", "select_day", "day_bounds"]
