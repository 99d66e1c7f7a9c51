import pytest

from tourmap.errors import InsufficientStops
from tourmap.legs import build_legs, day_bounds, require_legs, select_day
from tourmap.models import Leg, Stop


def test_build_legs_pairs_consecutive_stops(make_stops):
    stops = make_stops("Leipzig", "Lützen", "Weißenfels")
    legs = build_legs(stops)
    assert len(legs) == 2
    assert [(l.origin.name, l.destination.name) for l in legs] == [
        ("Leipzig", "Lützen"), ("Lützen", "Weißenfels")]
    assert all(l.origin.sequence_index + 1 == l.destination.sequence_index for l in legs)
    assert all(l.route_geometry is None and not l.resolved for l in legs)


@pytest.mark.parametrize("n", [0, 1])
def test_build_legs_short_trip_is_empty(make_stops, n):
    names = ["Leipzig", "Lützen"][:n]
    assert build_legs(make_stops(*names)) == []


def test_require_legs_rejects_short_trip(make_stops):
    with pytest.raises(InsufficientStops):
        require_legs(make_stops("Leipzig"))
    assert len(require_legs(make_stops("Leipzig", "Naumburg"))) == 1


def test_build_legs_refuses_gaps(make_stops):
    a, _, c = make_stops("Leipzig", "Lützen", "Naumburg")
    with pytest.raises(ValueError):
        build_legs([a, c])


def test_leg_invariant_checked_on_construction(make_stops):
    a, _, c = make_stops("Leipzig", "Lützen", "Naumburg")
    with pytest.raises(ValueError):
        Leg(a, c)


def test_build_legs_refuses_unlocated_stop():
    with pytest.raises(ValueError):
        build_legs([Stop(0, "Leipzig"), Stop(1, "Lützen")])


def test_select_day_picks_that_days_leg(make_stops):
    legs = build_legs(make_stops("Leipzig", "Lützen", "Weißenfels", "Naumburg"))
    assert select_day(legs, 1) == [legs[0]]
    assert select_day(legs, 2) == [legs[1]]
    assert select_day(legs, 3) == [legs[2]]


@pytest.mark.parametrize("day", [0, -1, 4, 99])
def test_select_day_out_of_range_is_empty(make_stops, day):
    legs = build_legs(make_stops("Leipzig", "Lützen", "Weißenfels", "Naumburg"))
    assert select_day(legs, day) == []


def test_day_bounds_covers_stops_and_route(make_stops, straight_line):
    legs = build_legs(make_stops("Leipzig", "Lützen"))
    routed = [legs[0].with_route(straight_line, 20_000.0, 70.0)]
    minx, miny, maxx, maxy = day_bounds(routed)
    for stop in (routed[0].origin, routed[0].destination):
        assert minx <= stop.point.x <= maxx
        assert miny <= stop.point.y <= maxy

    padded = day_bounds(routed, pad=0.1)
    assert padded[0] < minx and padded[2] > maxx


def test_day_bounds_empty():
    assert day_bounds([]) is None
