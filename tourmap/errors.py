"""
errors.py – exception hierarchy shared by every pipeline stage.

Fatal kinds abort the run; ``RouteResolutionFailed`` is per-leg and ends up
on ``Leg.failure`` instead of propagating.
"""
from __future__ import annotations


class TourmapError(RuntimeError):
    """Base class for everything this package raises on purpose."""


class ConfigError(TourmapError):
    """Trip configuration file is missing or does not validate."""


class SourceUnavailable(TourmapError):
    """Boundary dataset missing, unreadable, or lacking a required column."""


class InvalidGeometry(TourmapError):
    """A boundary polygon is malformed or cannot be reprojected."""


class GeocodingServiceUnavailable(TourmapError):
    """Geocoding backend unreachable or answering with a service error."""


class RoutingServiceUnavailable(TourmapError):
    """Routing backend unreachable, timing out, or failing with 5xx."""


class InsufficientStops(TourmapError):
    """Fewer than two geocoded stops remain, so no leg can be built."""


class RouteResolutionFailed(TourmapError):
    """The routing backend answered, but had no route for this leg."""


class PipelineError(TourmapError):
    """A fatal error tagged with the stage that raised it."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"[{stage}] {cause}")
        self.stage = stage
        self.cause = cause


__all__ = [
    "TourmapError",
    "ConfigError",
    "SourceUnavailable",
    "InvalidGeometry",
    "GeocodingServiceUnavailable",
    "RoutingServiceUnavailable",
    "InsufficientStops",
    "RouteResolutionFailed",
    "PipelineError",
]
