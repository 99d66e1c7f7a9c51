import threading
import time
from unittest import mock

import pytest
from geopy.exc import GeocoderTimedOut, GeocoderUnavailable
from geopy.geocoders import Nominatim
from pyproj import CRS as ProjCRS

from tourmap.errors import GeocodingServiceUnavailable
from tourmap.geocode import StopGeocoder

from conftest import CRS, FakeGeocoder, project


def _in_utm_range(point):
    # ETRS89 / UTM 32N area of use, generous bounds in metres
    return 0 < point.x < 1_500_000 and 4_000_000 < point.y < 9_500_000


def test_geocode_resolves_in_order(stop_geocoder):
    stops = stop_geocoder.geocode(["Leipzig", "Lützen", "Weißenfels"])
    assert [s.name for s in stops] == ["Leipzig", "Lützen", "Weißenfels"]
    assert [s.sequence_index for s in stops] == [0, 1, 2]
    assert all(_in_utm_range(s.point) for s in stops)
    assert stops[0].point.equals_exact(project("Leipzig"), 1e-6)
    assert stop_geocoder.last_unresolved == []


def test_unresolved_stop_is_dropped_and_renumbered(stop_geocoder):
    names = ["Leipzig", "NoSuchPlaceXYZ123", "Naumburg"]
    stops = stop_geocoder.geocode(names)
    assert len(stops) <= len(names)
    assert [s.name for s in stops] == ["Leipzig", "Naumburg"]
    assert [s.sequence_index for s in stops] == [0, 1]
    assert stop_geocoder.last_unresolved == ["NoSuchPlaceXYZ123"]


def test_one_request_per_name_and_duplicates_kept(fake_geocoder, stop_geocoder):
    names = ["Leipzig", "Lützen", "Leipzig"]
    stops = stop_geocoder.geocode(names)
    assert fake_geocoder.calls == names
    assert [s.name for s in stops] == names
    assert stops[0].point.equals(stops[2].point)


def test_parallel_geocoding_keeps_order(fake_geocoder):
    geocoder = StopGeocoder(CRS, geocoder=fake_geocoder, workers=4)
    names = ["Naumburg", "Leipzig", "Weißenfels", "Lützen", "Leipzig"]
    stops = geocoder.geocode(names)
    assert [s.name for s in stops] == names
    assert sorted(fake_geocoder.calls) == sorted(names)


def test_blank_name_dropped_without_request(fake_geocoder, stop_geocoder):
    stops = stop_geocoder.geocode(["Leipzig", "  ", "Lützen"])
    assert [s.name for s in stops] == ["Leipzig", "Lützen"]
    assert "" not in fake_geocoder.calls


@pytest.mark.parametrize("error", [GeocoderUnavailable("down"), GeocoderTimedOut("slow")])
def test_backend_failure_is_fatal(error):
    geocoder = StopGeocoder(CRS, geocoder=FakeGeocoder(error=error))
    with pytest.raises(GeocodingServiceUnavailable):
        geocoder.geocode(["Leipzig"])


def test_point_outside_target_crs_is_dropped():
    # Web Mercator cannot hold the poles
    geocoder = StopGeocoder("EPSG:3857",
                            geocoder=FakeGeocoder({"Nordpol": (0.0, 90.0),
                                                   "Leipzig": (12.3731, 51.3397)}))
    stops = geocoder.geocode(["Nordpol", "Leipzig"])
    assert [s.name for s in stops] == ["Leipzig"]
    assert geocoder.last_unresolved == ["Nordpol"]


def test_default_backend_is_nominatim():
    geocoder = StopGeocoder(CRS, user_agent="tourmap-tests")
    assert type(geocoder.geocoder).__name__ == "Nominatim"
    assert ProjCRS(geocoder.target_crs) == ProjCRS(CRS)


def test_margin_bounds_the_target_area():
    # EPSG:25832 officially ends at 12°E; Leipzig is at 12.37°E
    strict = StopGeocoder(CRS, geocoder=FakeGeocoder(), margin=0.0)
    stops = strict.geocode(["Weißenfels", "Leipzig"])
    assert [s.name for s in stops] == ["Weißenfels"]
    assert strict.last_unresolved == ["Leipzig"]

    far = StopGeocoder(CRS, geocoder=FakeGeocoder({"Lissabon": (-9.14, 38.72),
                                                  "Leipzig": (12.3731, 51.3397)}))
    assert [s.name for s in far.geocode(["Lissabon", "Leipzig"])] == ["Leipzig"]


def test_nominatim_requests_are_spaced():
    stamps = []

    def record(url, callback, timeout=None):
        stamps.append(time.monotonic())
        return None

    geocoder = StopGeocoder(CRS, user_agent="tourmap-tests", min_delay_seconds=0.2)
    with mock.patch.object(Nominatim, "_call_geocoder", side_effect=record):
        stops = geocoder.geocode(["A", "B", "C", "D"])

    assert stops == []
    assert len(stamps) == 4
    gaps = [b - a for a, b in zip(stamps, stamps[1:])]
    assert all(gap >= 0.15 for gap in gaps), gaps


class _BlockingGeocoder:
    """Fails on one name; every other lookup waits until released."""

    def __init__(self, failing):
        self.failing = failing
        self.release = threading.Event()
        self.calls = []
        self._lock = threading.Lock()

    def geocode(self, query, exactly_one=True, timeout=None):
        with self._lock:
            self.calls.append(query)
        if query == self.failing:
            raise GeocoderUnavailable("down")
        self.release.wait(timeout=5)
        return None


def test_parallel_failure_cancels_pending_lookups():
    backend = _BlockingGeocoder(failing="Leipzig")
    geocoder = StopGeocoder(CRS, geocoder=backend, workers=2)
    names = ["Leipzig", "Lützen", "Weißenfels", "Naumburg", "Halle", "Merseburg"]
    try:
        with pytest.raises(GeocodingServiceUnavailable):
            geocoder.geocode(names)
    finally:
        backend.release.set()
    assert len(backend.calls) < len(names)
    assert geocoder.last_unresolved == []
