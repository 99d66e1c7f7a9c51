# ── tourmap/pipeline.py ─────────────────────────────────────────────────────
"""
pipeline.py – one trip, end to end

  1 ▸ boundaries     load + filter by region code + reproject
  2 ▸ stops          geocode names, drop the ones without a hit
  3 ▸ legs           pair consecutive stops
  4 ▸ routing        one OSRM request per leg
  5 ▸ statistics     whole trip + each requested day
  6 ▸ maps           overview + one detail map per day
  7 ▸ export         leg CSV, route GeoJSON, optional GPX

Fatal errors leave as :class:`PipelineError` tagged with the stage.  Dropped
stops and legs without a route are not fatal: they are collected on the
returned :class:`TripReport` and logged as a summary.
"""
from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Type

from pyogrio.errors import DataLayerError, DataSourceError

from .config import TripConfig
from .errors import PipelineError, TourmapError
from .geocode import StopGeocoder
from .io import legs_to_gdf, save_geojson, save_leg_table, write_gpx
from .legs import require_legs, select_day
from .models import Leg, Stop, TripStatistics
from .regions import filter_regions, load_regions, mark_visited
from .render import MapComposer
from .routing import RouteResolver
from .stats import aggregate, leg_table

log = logging.getLogger("tourmap.pipeline")


# ─────────────────────────── report types ──────────────────────────────────
@dataclass
class DayReport:
    day: int
    legs: List[Leg]
    statistics: TripStatistics
    map_path: Optional[Path] = None


@dataclass
class TripReport:
    name: str
    stops: List[Stop]
    legs: List[Leg]
    statistics: TripStatistics
    unresolved_stops: List[str] = field(default_factory=list)
    days: List[DayReport] = field(default_factory=list)
    artefacts: Dict[str, Path] = field(default_factory=dict)

    @property
    def failed_legs(self) -> List[str]:
        return [f"{leg.label}: {leg.failure}" for leg in self.legs if not leg.resolved]

    @property
    def complete(self) -> bool:
        """True when no stop was dropped and every leg got a route."""
        return not self.unresolved_stops and not self.failed_legs

    def summary(self) -> str:
        lines = [f"{self.name}: {len(self.stops)} stops, {len(self.legs)} legs, "
                 f"{self.statistics}"]
        for day in self.days:
            lines.append(f"  day {day.day}: {day.statistics}")
        if self.unresolved_stops:
            lines.append(f"  dropped stops: {', '.join(self.unresolved_stops)}")
        for failure in self.failed_legs:
            lines.append(f"  no route: {failure}")
        return "\n".join(lines)


# ─────────────────────────── helper utils ──────────────────────────────────
@contextlib.contextmanager
def _stage(name: str, *extra: Type[BaseException]) -> Iterator[None]:
    """Tag fatal errors with ``name``; ``extra`` widens what counts as fatal."""
    log.debug("stage %s – start", name)
    try:
        yield
    except PipelineError:
        raise
    except (TourmapError, OSError, *extra) as exc:
        log.error("stage %s failed: %s", name, exc)
        raise PipelineError(name, exc) from exc


def _day_title(config: TripConfig, day: int, legs: List[Leg]) -> str:
    first, last = legs[0].origin.name, legs[-1].destination.name
    return f"{config.name} – day {day}: {first} → {last}"


# ─────────────────────────────── main API ──────────────────────────────────
def run_trip(
    config: TripConfig,
    geocoder: Optional[StopGeocoder] = None,
    resolver: Optional[RouteResolver] = None,
    composer: Optional[MapComposer] = None,
) -> TripReport:
    """
    Run every stage for one trip and write the artefacts to ``output_dir``.

    Collaborators can be injected; by default they are built from ``config``.
    """
    crs = config.target_crs
    out_dir = Path(config.output_dir)
    log.info("↳ %s – start (%s, %s)", config.name, config.profile.value, crs)

    # 1 ▸ boundaries --------------------------------------------------------
    with _stage("regions"):
        regions = load_regions(config.boundary_path, config.region_code_column,
                               config.region_id_column, config.boundary_layer)
        regions = filter_regions(regions, config.accepted_codes, crs,
                                 skip_invalid=config.skip_invalid_regions)

    # 2 ▸ stops -------------------------------------------------------------
    with _stage("geocode", ValueError):
        names = config.stop_names()
        geocoder = geocoder or StopGeocoder(
            crs,
            workers=config.geocoding.workers,
            timeout=config.geocoding.timeout,
            user_agent=config.geocoding.user_agent,
            min_delay_seconds=config.geocoding.min_delay_seconds,
            margin=config.geocoding.margin,
        )
        stops = geocoder.geocode(names)
        unresolved = list(geocoder.last_unresolved)

    # 3 ▸ legs --------------------------------------------------------------
    with _stage("legs"):
        legs = require_legs(stops)

    # 4 ▸ routing -----------------------------------------------------------
    with _stage("routing"):
        resolver = resolver or RouteResolver(
            crs,
            base_url=config.routing.base_url,
            endpoints=config.routing.endpoints,
            timeout=config.routing.timeout,
            workers=config.routing.workers,
        )
        legs = resolver.resolve_all(legs, config.profile)

    # 5 ▸ statistics --------------------------------------------------------
    statistics = aggregate(legs)
    report = TripReport(name=config.name, stops=stops, legs=legs,
                        statistics=statistics, unresolved_stops=unresolved)
    for day in config.days:
        day_legs = select_day(legs, day)
        if not day_legs:
            log.warning("Day %d is outside the trip (%d legs) – skipped", day, len(legs))
            continue
        report.days.append(DayReport(day, day_legs, aggregate(day_legs)))

    # 6 ▸ maps --------------------------------------------------------------
    with _stage("render", ValueError, RuntimeError):
        out_dir.mkdir(parents=True, exist_ok=True)
        composer = composer or MapComposer(config.style)
        visited = mark_visited(regions, stops)

        overview = composer.compose(
            visited, stops, legs,
            title=config.name,
            subtitle=f"{statistics.distance_label} · {statistics.duration_label}",
            crs=crs,
        )
        report.artefacts["overview"] = composer.save(
            overview, out_dir / f"{config.name}_overview.png")

        for day in report.days:
            day_stops = [day.legs[0].origin] + [leg.destination for leg in day.legs]
            figure = composer.compose(
                visited, day_stops, day.legs,
                title=_day_title(config, day.day, day.legs),
                subtitle=f"{day.statistics.distance_label} · {day.statistics.duration_label}",
                crs=crs,
            )
            day.map_path = composer.save(figure, out_dir / f"{config.name}_day{day.day}.png")
            report.artefacts[f"day{day.day}"] = day.map_path

    # 7 ▸ export ------------------------------------------------------------
    with _stage("export", ValueError, DataSourceError, DataLayerError):
        report.artefacts["legs"] = save_leg_table(
            leg_table(legs), out_dir / f"{config.name}_legs.csv")
        report.artefacts["route"] = save_geojson(
            legs_to_gdf(legs, crs), out_dir / f"{config.name}_route.geojson")
        if config.emit_gpx:
            report.artefacts["gpx"] = write_gpx(
                stops, crs, out_dir / f"{config.name}.gpx", name=config.name)

    # 8 ▸ KPI log -----------------------------------------------------------
    log.info("%s ✓ %s | %s | %d legs (%d without route) | %d stop(s) dropped",
             config.name,
             statistics.distance_label,
             statistics.duration_label,
             len(legs),
             statistics.unresolved_legs,
             len(unresolved))
    if not report.complete:
        log.warning("Partial result for %s:\n%s", config.name, report.summary())

    return report


__all__ = ["run_trip", "TripReport", "DayReport"]
