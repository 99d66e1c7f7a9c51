"""
routing.py – bike / foot legs from an OSRM routing service        v0·3
────────────────────────────────────────────────────────────────────
Every leg is one GET against the profile's endpoint:

  ① project origin/destination from the map CRS back to lon/lat,
  ② ask OSRM for the full route geometry as GeoJSON,
  ③ project the line into the map CRS, keep metres, turn seconds into minutes.

A service that cannot be reached is fatal for the whole trip.  A service
that answers "no route" only fails that leg: the leg comes back with
``failure`` set and stays out of the trip totals.

Public symbols
--------------
RouteResolver.resolve(leg, profile)      – one routed Leg
RouteResolver.resolve_all(legs, profile) – all legs, original order
"""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import requests
from pyproj import Transformer
from shapely.geometry import LineString, shape
from shapely.ops import transform

from .batch import map_ordered
from .errors import RouteResolutionFailed, RoutingServiceUnavailable
from .models import Leg, Profile

log = logging.getLogger("tourmap.routing")

WGS84 = "EPSG:4326"
DEFAULT_BASE_URL = "https://routing.openstreetmap.de"
DEFAULT_ENDPOINTS: Dict[Profile, str] = {
    Profile.BIKE: "routed-bike/route/v1/driving",
    Profile.FOOT: "routed-foot/route/v1/driving",
}
DEFAULT_TIMEOUT = 30  # seconds


class RouteResolver:
    """Resolve legs against OSRM; one shared HTTP session per resolver."""

    def __init__(
        self,
        target_crs,
        base_url: str = DEFAULT_BASE_URL,
        endpoints: Optional[Mapping[Profile | str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        workers: int = 4,
        session: Optional[requests.Session] = None,
    ):
        self.target_crs = target_crs
        self.base_url = base_url.rstrip("/")
        self.endpoints = dict(DEFAULT_ENDPOINTS)
        for key, value in (endpoints or {}).items():
            self.endpoints[Profile(key)] = value
        self.timeout = timeout
        self.workers = workers
        self.session = session or requests.Session()
        self._to_wgs84 = Transformer.from_crs(target_crs, WGS84, always_xy=True)
        self._from_wgs84 = Transformer.from_crs(WGS84, target_crs, always_xy=True)

    # ------------------------------------------------------------------ #
    # internal helpers
    # ------------------------------------------------------------------ #
    def _url(self, leg: Leg, profile: Profile) -> str:
        coords = []
        for stop in (leg.origin, leg.destination):
            lon, lat = self._to_wgs84.transform(stop.point.x, stop.point.y)
            coords.append(f"{lon:.6f},{lat:.6f}")
        endpoint = self.endpoints[profile].strip("/")
        return f"{self.base_url}/{endpoint}/{';'.join(coords)}"

    def _fetch(self, leg: Leg, profile: Profile) -> dict:
        url = self._url(leg, profile)
        log.debug("GET %s", url)
        try:
            response = self.session.get(
                url,
                params={"overview": "full", "geometries": "geojson",
                        "steps": "false", "alternatives": "false"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RoutingServiceUnavailable(
                f"routing service unreachable for {leg.label}: {exc}"
            ) from exc

        if response.status_code >= 500:
            raise RoutingServiceUnavailable(
                f"routing service returned HTTP {response.status_code} for {leg.label}"
            )

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            if response.status_code == 200:
                raise RouteResolutionFailed(
                    f"malformed response: expected a JSON object, got {type(payload).__name__}"
                )
            payload = {}

        if response.status_code != 200:
            raise RouteResolutionFailed(
                f"HTTP {response.status_code}: "
                f"{payload.get('message') or payload.get('code') or response.reason}"
            )
        if payload.get("code") != "Ok" or not payload.get("routes"):
            raise RouteResolutionFailed(
                f"no route ({payload.get('code', 'empty response')})"
            )
        return payload["routes"][0]

    def _to_leg(self, leg: Leg, route: dict) -> Leg:
        try:
            line = shape(route["geometry"])
            distance = float(route["distance"])
            duration = float(route["duration"]) / 60.0
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise RouteResolutionFailed(f"malformed route payload: {exc}") from exc
        if not isinstance(line, LineString) or line.is_empty:
            raise RouteResolutionFailed(f"unexpected route geometry {line.geom_type}")
        return leg.with_route(transform(self._from_wgs84.transform, line),
                              distance, duration)

    # ------------------------------------------------------------------ #
    # public API
    # ------------------------------------------------------------------ #
    def resolve(self, leg: Leg, profile: Profile | str) -> Leg:
        """
        Route one leg.

        Raises :class:`RoutingServiceUnavailable` on network faults and 5xx;
        a service-side "no route" comes back as ``leg.failure`` instead.
        """
        profile = Profile(profile)
        if leg.origin.point is None or leg.destination.point is None:
            raise ValueError(f"leg {leg.label} has an unlocated stop")

        if leg.origin.point.equals(leg.destination.point):
            log.debug("%s is stationary – no request needed", leg.label)
            stay = LineString([leg.origin.point, leg.destination.point])
            return leg.with_route(stay, 0.0, 0.0)

        try:
            routed = self._to_leg(leg, self._fetch(leg, profile))
        except RouteResolutionFailed as exc:
            log.warning("No %s route for %s: %s", profile.value, leg.label, exc)
            return leg.with_failure(str(exc))

        log.debug("%s: %.0f m, %.0f min", leg.label,
                  routed.distance_meters, routed.duration_minutes)
        return routed

    def resolve_all(self, legs: Sequence[Leg], profile: Profile | str) -> List[Leg]:
        """Route every leg over a bounded pool; output keeps the input order."""
        profile = Profile(profile)
        log.info("Routing %d legs by %s (workers=%d)", len(legs), profile.value, self.workers)
        return map_ordered(lambda leg: self.resolve(leg, profile), legs,
                           self.workers, name="routing")


__all__ = ["RouteResolver", "DEFAULT_BASE_URL", "DEFAULT_ENDPOINTS"]
