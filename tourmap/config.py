"""
config.py – trip configuration (YAML → pydantic) and the map style object.

A minimal trip file::

    name: saale-tour
    boundary_path: data/VG250_GEM.shp
    region_code_column: SN_L
    accepted_codes: ["14", "15"]
    profile: bike
    days: [1, 2]
    stops:
      - Leipzig
      - Lützen
      - Weißenfels
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import yaml
from pydantic import (BaseModel, ConfigDict, Field, ValidationError,
                      field_validator, model_validator)
from pyproj import CRS
from pyproj.exceptions import CRSError

from . import OUTPUT_DIR
from .errors import ConfigError
from .geocode import DEFAULT_MARGIN
from .io import load_stop_names
from .models import Profile
from .routing import DEFAULT_BASE_URL, DEFAULT_ENDPOINTS, DEFAULT_TIMEOUT

logger = logging.getLogger("tourmap.config")

# ETRS89 / UTM zone 32N – the usual projected CRS for German boundary data
DEFAULT_CRS = "EPSG:25832"


# ────────────────────────────────────────────────────────────────────────────
class RoutingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = DEFAULT_BASE_URL
    endpoints: Dict[Profile, str] = Field(default_factory=lambda: dict(DEFAULT_ENDPOINTS))
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    workers: int = Field(4, ge=1, le=16)


class GeocodingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_agent: str = "tourmap"
    timeout: float = Field(10, gt=0)
    # public Nominatim allows one request per second – keep this at 1 there
    workers: int = Field(1, ge=1, le=8)
    min_delay_seconds: float = Field(1.0, ge=0)
    # degrees of slack around the target CRS' area of use
    margin: float = Field(DEFAULT_MARGIN, ge=0)


class MapStyle(BaseModel):
    """Everything the map composer needs to know about looks."""

    model_config = ConfigDict(extra="forbid")

    figsize: Tuple[float, float] = (12.0, 12.0)
    dpi: int = Field(150, gt=0)
    font_family: str = "DejaVu Sans"
    font_size: float = Field(9.0, gt=0)

    region_color: str = "#f0f0f0"
    visited_color: str = "#b6d7a8"
    region_edge_color: str = "#8c8c8c"
    region_alpha: float = Field(0.6, ge=0, le=1)

    route_color: str = "#c0392b"
    route_width: float = Field(2.5, gt=0)
    failed_route_color: str = "#7f8c8d"

    stop_color: str = "#1b1b1b"
    stop_size: float = Field(30.0, gt=0)

    label_stops: bool = True
    label_legs: bool = True

    # contextily provider path, e.g. "CartoDB.Positron"; None disables tiles
    basemap: Optional[str] = "CartoDB.Positron"
    basemap_alpha: float = Field(0.9, ge=0, le=1)
    padding: float = Field(0.05, ge=0)


# ────────────────────────────────────────────────────────────────────────────
class TripConfig(BaseModel):
    """One trip: where the stops come from, what to draw, where to write."""

    model_config = ConfigDict(extra="forbid")

    name: str = "trip"
    stops: List[str] = Field(default_factory=list)
    stops_file: Optional[Path] = None

    boundary_path: Path
    boundary_layer: Optional[str] = None
    region_code_column: str
    region_id_column: Optional[str] = None
    accepted_codes: Set[str] = Field(default_factory=set)   # empty → all
    skip_invalid_regions: bool = False

    target_crs: str = DEFAULT_CRS
    profile: Profile = Profile.BIKE
    days: List[int] = Field(default_factory=list)
    emit_gpx: bool = False
    output_dir: Path = OUTPUT_DIR

    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    style: MapStyle = Field(default_factory=MapStyle)

    # ── validators ──────────────────────────────────────────────────────
    @field_validator("stops", mode="before")
    @classmethod
    def _strip_stops(cls, v):
        if v is None:
            return []
        return [str(s).strip() for s in v if str(s).strip()]

    @field_validator("accepted_codes", mode="before")
    @classmethod
    def _codes_as_str(cls, v):
        if v is None:
            return set()
        if isinstance(v, (str, int)):
            v = [v]
        return {str(c).strip() for c in v}

    @field_validator("target_crs")
    @classmethod
    def _known_crs(cls, v: str) -> str:
        try:
            CRS.from_user_input(v)
        except CRSError as exc:
            raise ValueError(f"unknown CRS {v!r}: {exc}") from exc
        return v

    @field_validator("days")
    @classmethod
    def _positive_days(cls, v: List[int]) -> List[int]:
        if any(d < 1 for d in v):
            raise ValueError("day numbers start at 1")
        return sorted(set(v))

    @model_validator(mode="after")
    def _has_stops(self):
        if not self.stops and self.stops_file is None:
            raise ValueError("either 'stops' or 'stops_file' must be given")
        return self

    # ── helpers ─────────────────────────────────────────────────────────
    def stop_names(self) -> List[str]:
        if self.stops:
            return list(self.stops)
        return load_stop_names(self.stops_file)


def load_config(path: Path | str, **overrides) -> TripConfig:
    """
    Read a YAML trip file.  Input paths are taken relative to the file;
    ``overrides`` (e.g. from the CLI) win over the file's values.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path.name}: invalid YAML – {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name}: top level must be a mapping")

    for key in ("boundary_path", "stops_file"):
        if raw.get(key) and not Path(raw[key]).is_absolute():
            raw[key] = str(path.parent / raw[key])

    raw.update({k: v for k, v in overrides.items() if v is not None})
    try:
        config = TripConfig(**raw)
    except ValidationError as err:
        raise ConfigError(f"{path.name}: {err}") from err

    logger.info("Loaded trip %r from %s", config.name, path)
    return config


__all__ = ["TripConfig", "RoutingSettings", "GeocodingSettings", "MapStyle",
           "load_config", "DEFAULT_CRS"]
