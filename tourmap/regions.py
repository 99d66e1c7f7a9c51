"""
regions.py – administrative boundaries: load, filter by region code, reproject

Region records live in a GeoDataFrame with the ``REGION_COLUMNS`` schema
(``region_id``, ``region_code``, ``geometry``).  Nothing here mutates its
input; every function hands back a new frame.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import AbstractSet, Iterable, Optional

import geopandas as gpd
import numpy as np
from shapely.geometry import MultiPoint

from .errors import InvalidGeometry, SourceUnavailable
from .models import REGION_COLUMNS, Stop

logger = logging.getLogger("tourmap.regions")


# ────────────────────────────────────────────────────────────────────────────
# Loading
# ────────────────────────────────────────────────────────────────────────────
def load_regions(
    path: Path | str,
    code_column: str,
    id_column: Optional[str] = None,
    layer: Optional[str] = None,
) -> gpd.GeoDataFrame:
    """
    Read a boundary dataset (Shapefile, GeoPackage, GeoJSON …).

    The code column (and id column, if given) is checked against the dataset
    schema up front, so a typo fails here and not halfway through the run.
    """
    path = Path(path)
    if not path.exists():
        raise SourceUnavailable(f"boundary dataset not found: {path}")

    try:
        raw = gpd.read_file(path, layer=layer) if layer else gpd.read_file(path)
    except Exception as exc:  # noqa: BLE001
        raise SourceUnavailable(f"cannot read boundary dataset {path}: {exc}") from exc

    missing = [c for c in (code_column, id_column) if c and c not in raw.columns]
    if missing:
        available = [c for c in raw.columns if c != raw.geometry.name]
        raise SourceUnavailable(
            f"{path.name}: missing column(s) {missing}; available: {available}"
        )
    if raw.crs is None:
        raise SourceUnavailable(f"{path.name}: dataset has no CRS")

    ids = raw[id_column] if id_column else raw.index.to_series()
    codes = raw[code_column].astype("string").fillna("").str.strip().astype(str)
    regions = gpd.GeoDataFrame(
        {"region_id": ids.to_numpy(), "region_code": codes.to_numpy()},
        geometry=raw.geometry.to_numpy(),
        crs=raw.crs,
    )

    blank = (regions["region_code"] == "").to_numpy()
    if blank.any():
        logger.warning("Dropping %d boundary records without a region code",
                       int(blank.sum()))
        regions = regions[~blank].reset_index(drop=True)

    logger.info("Loaded %d boundary records from %s", len(regions), path.name)
    return regions[REGION_COLUMNS]


# ────────────────────────────────────────────────────────────────────────────
# Filtering
# ────────────────────────────────────────────────────────────────────────────
def _reject(regions: gpd.GeoDataFrame, bad: np.ndarray, reason: str,
            skip_invalid: bool) -> gpd.GeoDataFrame:
    if not bad.any():
        return regions
    ids = regions.loc[bad, "region_id"].tolist()
    if not skip_invalid:
        raise InvalidGeometry(f"{len(ids)} boundary record(s) {reason}: {ids[:10]}")
    logger.warning("Skipping %d boundary record(s) that %s: %s",
                   len(ids), reason, ids[:10])
    return regions[~bad].reset_index(drop=True)


def filter_regions(
    regions: gpd.GeoDataFrame,
    accepted_codes: AbstractSet[str] | Iterable[str],
    target_crs,
    skip_invalid: bool = False,
) -> gpd.GeoDataFrame:
    """
    Records whose ``region_code`` is in ``accepted_codes``, reprojected.

    An empty code set keeps every record.  Input order is preserved and the
    input frame is left untouched.  Broken boundaries raise
    :class:`InvalidGeometry` unless ``skip_invalid`` is set, in which case
    they are dropped with a warning.
    """
    if regions.crs is None:
        raise InvalidGeometry("boundary records carry no CRS – cannot reproject")

    codes = {str(c) for c in accepted_codes}
    if codes:
        subset = regions[regions["region_code"].astype(str).isin(codes)]
    else:
        subset = regions
    subset = subset.reset_index(drop=True).copy()

    geoms = subset.geometry
    bad = (geoms.isna() | geoms.is_empty | ~geoms.is_valid).to_numpy()
    subset = _reject(subset, bad, "are empty or invalid", skip_invalid)

    try:
        projected = subset.to_crs(target_crs)
    except Exception as exc:  # noqa: BLE001
        raise InvalidGeometry(f"cannot reproject boundaries to {target_crs}: {exc}") from exc

    finite = np.isfinite(projected.geometry.bounds.to_numpy()).all(axis=1)
    projected = _reject(projected, ~finite, f"fall outside {target_crs}", skip_invalid)

    logger.info("Region filter kept %d of %d records (codes=%s)",
                len(projected), len(regions), sorted(codes) or "all")
    return projected


def mark_visited(regions: gpd.GeoDataFrame, stops: Iterable[Stop]) -> gpd.GeoDataFrame:
    """Copy of ``regions`` with a ``visited`` column: true if any stop lies inside."""
    points = [s.point for s in stops if s.point is not None]
    marked = regions.copy()
    if not points:
        marked["visited"] = False
        return marked
    marked["visited"] = marked.geometry.intersects(MultiPoint(points)).to_numpy()
    logger.debug("%d of %d regions visited", int(marked["visited"].sum()), len(marked))
    return marked


__all__ = ["load_regions", "filter_regions", "mark_visited"]
