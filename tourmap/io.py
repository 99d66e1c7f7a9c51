"""
io.py – stop list CSV ingest, GeoJSON / GPX / CSV writers
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

import geopandas as gpd
import pandas as pd
from shapely.geometry import LineString

from .models import Leg, Stop

logger = logging.getLogger("tourmap.io")

WGS84 = "EPSG:4326"


# ────────────────────────────────────────────────────────────────────────────
def load_stop_names(csv_path: Path | str) -> List[str]:
    """
    Ordered stop names from a CSV with a ``name`` column.

    Blank rows are skipped; the file order is the trip order.
    """
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(csv_path)

    df = pd.read_csv(csv_path, dtype=str)
    if "name" not in df.columns:
        raise ValueError(f"{csv_path.name}: missing column 'name'")

    names = [n.strip() for n in df["name"].dropna() if n.strip()]
    if not names:
        raise ValueError(f"{csv_path.name}: no stop names")

    logger.info("Loaded %d stop names from %s", len(names), csv_path.name)
    return names


# ────────────────────────────────────────────────────────────────────────────
def stops_to_gdf(stops: Sequence[Stop], crs) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"sequence_index": [s.sequence_index for s in stops],
         "name": [s.name for s in stops]},
        geometry=[s.point for s in stops],
        crs=crs,
    )


def legs_to_gdf(legs: Sequence[Leg], crs) -> gpd.GeoDataFrame:
    """Routed legs as lines; unresolved legs fall back to the straight chord."""
    rows = []
    for leg in legs:
        geometry = leg.route_geometry
        if geometry is None:
            geometry = LineString([leg.origin.point, leg.destination.point])
        rows.append(dict(
            leg=leg.position + 1,
            origin=leg.origin.name,
            destination=leg.destination.name,
            distance_m=leg.distance_meters,
            duration_min=leg.duration_minutes,
            resolved=leg.resolved,
            geometry=geometry,
        ))
    if not rows:
        return gpd.GeoDataFrame({"geometry": []}, geometry="geometry", crs=crs)
    return gpd.GeoDataFrame(rows, geometry="geometry", crs=crs)


# ────────────────────────────────────────────────────────────────────────────
def save_geojson(gdf: gpd.GeoDataFrame, out_path: Path | str) -> Path:
    """Write a GeoJSON file (WGS-84) and log the result."""
    out_path = Path(out_path)
    gdf.to_crs(WGS84).to_file(out_path, driver="GeoJSON")
    logger.info("GeoJSON written to %s (%d features)", out_path, len(gdf))
    return out_path


def write_gpx(stops: Sequence[Stop], crs, out_path: Path | str,
              name: str = "trip") -> Path:
    """
    The trip as a GPX route: one ``<rte>`` whose points are the stops in
    trip order.  The stop names go into the route description.
    """
    if len(stops) < 2:
        raise ValueError("a GPX route needs at least two stops")
    out_path = Path(out_path)
    if out_path.exists():
        out_path.unlink()           # the GPX driver refuses to overwrite
    route = gpd.GeoDataFrame(
        {"name": [name], "desc": [" → ".join(s.name for s in stops)]},
        geometry=[LineString([s.point for s in stops])],
        crs=crs,
    ).to_crs(WGS84)
    route.to_file(out_path, driver="GPX", layer="routes")
    logger.info("GPX written to %s (route with %d points)", out_path, len(stops))
    return out_path


def save_leg_table(table: pd.DataFrame, out_path: Path | str) -> Path:
    out_path = Path(out_path)
    table.to_csv(out_path, index=False)
    logger.info("Leg summary written to %s (%d legs)", out_path, len(table))
    return out_path


__all__ = ["load_stop_names", "stops_to_gdf", "legs_to_gdf",
           "save_geojson", "write_gpx", "save_leg_table"]
