import types
from pathlib import Path
from unittest import mock

import geopandas as gpd
import pytest
import requests
from pyproj import Transformer
from shapely.geometry import LineString, Point, box

from tourmap.geocode import StopGeocoder
from tourmap.models import Stop
from tourmap.routing import RouteResolver

CRS = "EPSG:25832"

# (lon, lat) of the places used throughout the scenarios
PLACES = {
    "Leipzig": (12.3731, 51.3397),
    "Lützen": (12.1420, 51.2574),
    "Weißenfels": (11.9680, 51.2000),
    "Naumburg": (11.8098, 51.1520),
}

_TO_UTM = Transformer.from_crs("EPSG:4326", CRS, always_xy=True)


def project(name: str) -> Point:
    return Point(*_TO_UTM.transform(*PLACES[name]))


@pytest.fixture
def make_stops():
    def _make(*names):
        return [Stop(i, n, project(n)) for i, n in enumerate(names)]
    return _make


# ── boundaries ──────────────────────────────────────────────────────────────
@pytest.fixture
def boundary_gdf():
    """Four square 'municipalities' around the places, WGS-84."""
    rows = [
        ("14713000", "14", "Leipzig"),
        ("15084275", "15", "Lützen"),
        ("15084550", "15", "Weißenfels"),
        ("15084355", "15", "Naumburg"),
    ]
    return gpd.GeoDataFrame(
        {
            "AGS": [r[0] for r in rows],
            "SN_L": [r[1] for r in rows],
            "GEN": [r[2] for r in rows],
        },
        geometry=[box(PLACES[r[2]][0] - 0.05, PLACES[r[2]][1] - 0.03,
                      PLACES[r[2]][0] + 0.05, PLACES[r[2]][1] + 0.03) for r in rows],
        crs="EPSG:4326",
    )


@pytest.fixture
def boundary_file(tmp_path, boundary_gdf) -> Path:
    path = tmp_path / "gemeinden.geojson"
    boundary_gdf.to_file(path, driver="GeoJSON")
    return path


# ── fake geocoding backend ─────────────────────────────────────────────────
class FakeGeocoder:
    def __init__(self, places=PLACES, error=None):
        self.places = places
        self.error = error
        self.calls = []

    def geocode(self, query, exactly_one=True, timeout=None):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        if query not in self.places:
            return None
        lon, lat = self.places[query]
        return types.SimpleNamespace(longitude=lon, latitude=lat, address=query)


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def stop_geocoder(fake_geocoder):
    return StopGeocoder(CRS, geocoder=fake_geocoder)


# ── fake OSRM ───────────────────────────────────────────────────────────────
def osrm_response(status=200, payload=None, reason="OK"):
    response = mock.MagicMock(spec=requests.Response)
    response.status_code = status
    response.reason = reason
    response.json.return_value = payload if payload is not None else {}
    return response


def osrm_ok(url, distance=10_000.0, duration=2_400.0):
    """A one-route OSRM answer running straight between the URL's coordinates."""
    coords = url.rsplit("/", 1)[-1].split(";")
    line = [[float(v) for v in c.split(",")] for c in coords]
    return osrm_response(payload={
        "code": "Ok",
        "routes": [{
            "geometry": {"type": "LineString", "coordinates": line},
            "distance": distance,
            "duration": duration,
        }],
    })


@pytest.fixture
def osrm_session():
    session = mock.MagicMock(spec=requests.Session)
    session.get.side_effect = lambda url, params=None, timeout=None: osrm_ok(url)
    return session


@pytest.fixture
def resolver(osrm_session):
    return RouteResolver(CRS, session=osrm_session, workers=1)


@pytest.fixture
def straight_line():
    return LineString([project("Leipzig"), project("Lützen")])
