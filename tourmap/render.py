"""
render.py – static trip maps (matplotlib + geopandas, contextily tiles)

The composer never touches process-wide matplotlib state: figures are
built from :class:`matplotlib.figure.Figure` directly and fonts come from the
``MapStyle`` through ``rc_context``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

import contextily as ctx
import geopandas as gpd
import matplotlib
from matplotlib.figure import Figure

from .config import MapStyle
from .legs import day_bounds
from .models import Leg, Stop
from .stats import format_distance, format_duration

_LOGGER = logging.getLogger("tourmap.render")

Bounds = Tuple[float, float, float, float]

# smallest extent (map units) a map is allowed to zoom to
_MIN_SPAN = 2_000.0


def _leg_label(leg: Leg) -> str:
    if not leg.resolved:
        return "no route"
    return f"{format_distance(leg.distance_meters)}\n{format_duration(leg.duration_minutes)}"


class MapComposer:
    """Draw regions, legs and stops onto one figure per call."""

    def __init__(self, style: Optional[MapStyle] = None):
        self.style = style or MapStyle()
        self._basemap_failure: Optional[str] = None

    # ------------------------------------------------------------------ #
    def _extent(self, regions: gpd.GeoDataFrame, stops: Sequence[Stop],
                legs: Sequence[Leg]) -> Optional[Bounds]:
        box = day_bounds(legs) if legs else None
        points = [s.point for s in stops if s.point is not None]
        if box is None and points:
            xs = [p.x for p in points]
            ys = [p.y for p in points]
            box = min(xs), min(ys), max(xs), max(ys)
        if box is None:
            return None if regions.empty else tuple(regions.total_bounds)

        minx, miny, maxx, maxy = box
        margin = max(max(maxx - minx, maxy - miny) * self.style.padding, _MIN_SPAN / 2)
        return minx - margin, miny - margin, maxx + margin, maxy + margin

    def _draw_regions(self, ax, regions: gpd.GeoDataFrame) -> None:
        if regions.empty:
            return
        style = self.style
        if "visited" in regions.columns:
            colors = [style.visited_color if v else style.region_color
                      for v in regions["visited"]]
        else:
            colors = style.region_color
        regions.plot(ax=ax, color=colors, edgecolor=style.region_edge_color,
                     linewidth=0.4, alpha=style.region_alpha, zorder=1)

    def _draw_legs(self, ax, legs: Sequence[Leg], crs) -> None:
        style = self.style
        routed = [leg.route_geometry for leg in legs if leg.resolved]
        if routed:
            gpd.GeoSeries(routed, crs=crs).plot(
                ax=ax, color=style.route_color, linewidth=style.route_width, zorder=3)
        chords = [
            [(leg.origin.point.x, leg.destination.point.x),
             (leg.origin.point.y, leg.destination.point.y)]
            for leg in legs if not leg.resolved
        ]
        for xs, ys in chords:
            ax.plot(xs, ys, color=style.failed_route_color,
                    linewidth=style.route_width / 2, linestyle="--", zorder=3)

        if not style.label_legs:
            return
        for leg in legs:
            if leg.resolved:
                anchor = leg.route_geometry.interpolate(0.5, normalized=True)
                x, y = anchor.x, anchor.y
            else:
                x = (leg.origin.point.x + leg.destination.point.x) / 2
                y = (leg.origin.point.y + leg.destination.point.y) / 2
            ax.annotate(_leg_label(leg), (x, y), ha="center", va="center",
                        fontsize=style.font_size * 0.85, zorder=5,
                        bbox=dict(boxstyle="round,pad=0.2", fc="white",
                                  ec=style.route_color, alpha=0.85, lw=0.5))

    def _draw_stops(self, ax, stops: Sequence[Stop]) -> None:
        style = self.style
        located = [s for s in stops if s.point is not None]
        if not located:
            return
        ax.scatter([s.point.x for s in located], [s.point.y for s in located],
                   s=style.stop_size, c=style.stop_color, zorder=4)
        if style.label_stops:
            for stop in located:
                ax.annotate(stop.name, (stop.point.x, stop.point.y),
                            xytext=(4, 4), textcoords="offset points",
                            fontsize=style.font_size, zorder=5)

    def _draw_basemap(self, ax, crs) -> None:
        if self.style.basemap is None or self._basemap_failure is not None:
            return
        try:
            source = ctx.providers.query_name(self.style.basemap)
            ctx.add_basemap(ax, crs=crs, source=source, alpha=self.style.basemap_alpha,
                            zorder=0, attribution_size=6)
        except Exception as exc:  # noqa: BLE001
            self._basemap_failure = (
                "Basemap loading failed once and was disabled for remaining maps: "
                f"{exc}"
            )
            _LOGGER.warning(self._basemap_failure)

    # ------------------------------------------------------------------ #
    def compose(
        self,
        regions: gpd.GeoDataFrame,
        stops: Sequence[Stop],
        legs: Sequence[Leg],
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
        bounds: Optional[Bounds] = None,
        crs=None,
    ) -> Figure:
        """
        One static map.  ``bounds`` restricts the extent (day maps); by
        default the map frames every leg (or every stop) plus padding.
        """
        if crs is None:
            crs = regions.crs
        style = self.style
        with matplotlib.rc_context({"font.family": style.font_family,
                                    "font.size": style.font_size}):
            fig = Figure(figsize=style.figsize, dpi=style.dpi)
            ax = fig.add_subplot()

            self._draw_regions(ax, regions)
            self._draw_legs(ax, legs, crs)
            self._draw_stops(ax, stops)

            extent = bounds or self._extent(regions, stops, legs)
            if extent is not None:
                minx, miny, maxx, maxy = extent
                ax.set_xlim(minx, maxx)
                ax.set_ylim(miny, maxy)
            ax.set_aspect("equal")
            ax.set_axis_off()

            if crs is not None:
                self._draw_basemap(ax, crs)
                if extent is not None:
                    ax.set_xlim(minx, maxx)
                    ax.set_ylim(miny, maxy)

            if title:
                ax.set_title(title, fontsize=style.font_size * 1.6, loc="left")
            if subtitle:
                fig.text(0.01, 0.01, subtitle, fontsize=style.font_size, ha="left")
            fig.tight_layout()
        return fig

    def save(self, figure: Figure, path: Path | str) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        figure.savefig(path, dpi=self.style.dpi)
        _LOGGER.info("Map written to %s", path)
        return path


__all__ = ["MapComposer", "MapStyle"]
