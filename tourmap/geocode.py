"""
geocode.py – place names → projected stop points (Nominatim via geopy)

Policy
------
* one request per name, no retry; repeated names are looked up again
  because a trip may come back to the same place
* the public Nominatim instance is throttled to one request per second
* a hit outside the target CRS' area of use (plus ``margin`` degrees) is
  treated like no hit at all
* names without a hit are dropped and the survivors renumbered 0..n-1,
  so the leg builder never pairs across a gap
* an unreachable backend aborts the run
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from geopy.exc import GeocoderServiceError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim
from pyproj import CRS, Transformer
from shapely.geometry import Point

from .batch import map_ordered
from .errors import GeocodingServiceUnavailable
from .models import Stop

logger = logging.getLogger("tourmap.geocode")

DEFAULT_USER_AGENT = "tourmap"
DEFAULT_MARGIN = 1.5        # degrees around the CRS' area of use
WGS84 = "EPSG:4326"


class StopGeocoder:
    """Resolve an ordered list of stop names into :class:`Stop` objects."""

    def __init__(self, target_crs, geocoder=None, workers: int = 1,
                 timeout: float = 10, user_agent: str = DEFAULT_USER_AGENT,
                 min_delay_seconds: float = 1.0, margin: float = DEFAULT_MARGIN):
        self.target_crs = target_crs
        self.workers = workers
        self.timeout = timeout
        self.last_unresolved: List[str] = []
        if geocoder is None:
            self.geocoder = Nominatim(user_agent=user_agent)
            self._geocode = RateLimiter(self.geocoder.geocode,
                                        min_delay_seconds=min_delay_seconds,
                                        max_retries=0, swallow_exceptions=False)
        else:
            self.geocoder = geocoder
            self._geocode = geocoder.geocode
        self._to_target = Transformer.from_crs(WGS84, target_crs, always_xy=True)
        self._area = self._area_of_use(target_crs, margin)

    @staticmethod
    def _area_of_use(target_crs, margin: float) -> Optional[Tuple[float, float, float, float]]:
        area = CRS.from_user_input(target_crs).area_of_use
        if area is None:
            return None
        west, south, east, north = area.bounds
        return west - margin, south - margin, east + margin, north + margin

    # ------------------------------------------------------------------ #
    def _lookup(self, name: str) -> Optional[Tuple[float, float]]:
        """(lon, lat) for ``name`` or ``None``; backend faults propagate."""
        if not name:
            return None
        try:
            location = self._geocode(name, exactly_one=True, timeout=self.timeout)
        except GeocoderServiceError as exc:
            raise GeocodingServiceUnavailable(
                f"geocoding backend failed for {name!r}: {exc}"
            ) from exc
        if location is None:
            return None
        return float(location.longitude), float(location.latitude)

    def _inside_area(self, lon: float, lat: float) -> bool:
        if self._area is None:
            return True
        west, south, east, north = self._area
        if not south <= lat <= north:
            return False
        if west <= east:
            return west <= lon <= east
        return lon >= west or lon <= east     # area crosses the antimeridian

    def _project(self, lonlat: Tuple[float, float]) -> Optional[Point]:
        if not self._inside_area(*lonlat):
            return None
        x, y = self._to_target.transform(*lonlat)
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        return Point(x, y)

    # ------------------------------------------------------------------ #
    def geocode(self, names: Sequence[str]) -> List[Stop]:
        names = [n.strip() for n in names]
        logger.info("Geocoding %d stops (workers=%d)", len(names), self.workers)
        hits = map_ordered(self._lookup, names, self.workers, name="geocode")

        stops: List[Stop] = []
        unresolved: List[str] = []
        for name, lonlat in zip(names, hits):
            point = self._project(lonlat) if lonlat is not None else None
            if point is None:
                if lonlat is None:
                    logger.warning("Dropping stop %r – no location found", name)
                else:
                    logger.warning("Dropping stop %r – (%.4f, %.4f) lies outside %s",
                                   name, *lonlat, self.target_crs)
                unresolved.append(name)
                continue
            stops.append(Stop(sequence_index=len(stops), name=name, point=point))
            logger.debug("%s → (%.1f, %.1f)", name, point.x, point.y)

        self.last_unresolved = unresolved
        logger.info("Geocoded %d of %d stops", len(stops), len(names))
        return stops


__all__ = ["StopGeocoder"]
