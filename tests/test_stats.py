import pytest

from tourmap.models import Leg, TripStatistics
from tourmap.stats import (aggregate, format_distance, format_duration, leg_table,
                           round_to_quarter_hour)


@pytest.mark.parametrize("minutes, expected", [
    (0, "0 minutes"),
    (-30, "0 minutes"),
    (7, "0 minutes"),
    (8, "15 minutes"),
    (45, "45 minutes"),
    (61, "1 hour 0 minutes"),
    (95, "1 hour 30 minutes"),
    (130, "2 hours 15 minutes"),
    (1500, "25 hours 0 minutes"),
])
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected


def test_quarter_hour_rounds_halves_up():
    assert round_to_quarter_hour(7.5) == 15
    assert round_to_quarter_hour(22.4) == 15
    assert round_to_quarter_hour(52.5) == 60


@pytest.mark.parametrize("meters, unit, expected", [
    (0, "km", "0 km"),
    (12_345, "km", "12 km"),
    (12_500, "km", "13 km"),
    (1_234_567, "km", "1,235 km"),
    (1_234.4, "m", "1,234 m"),
])
def test_format_distance(meters, unit, expected):
    assert format_distance(meters, unit) == expected


def test_format_distance_rejects_unknown_unit():
    with pytest.raises(ValueError):
        format_distance(100, "mi")


def _routed(make_stops, straight_line, *pairs):
    stops = make_stops(*(["Leipzig", "Lützen", "Weißenfels", "Naumburg"][:len(pairs) + 1]))
    legs = []
    for (a, b), value in zip(zip(stops, stops[1:]), pairs):
        leg = Leg(a, b)
        legs.append(leg.with_failure("no route") if value is None
                    else leg.with_route(straight_line, *value))
    return legs


def test_aggregate_sums_resolved_legs(make_stops, straight_line):
    legs = _routed(make_stops, straight_line, (20_000.0, 70.0), (15_000.0, 50.0))
    stats = aggregate(legs)
    assert stats.total_distance_meters == 35_000.0
    assert stats.total_duration_minutes == 120.0
    assert (stats.resolved_legs, stats.unresolved_legs) == (2, 0)
    assert stats.distance_label == "35 km"
    assert stats.duration_label == "2 hours 0 minutes"


def test_aggregate_excludes_unresolved_legs(make_stops, straight_line):
    legs = _routed(make_stops, straight_line, (20_000.0, 70.0), None, (5_000.0, 20.0))
    stats = aggregate(legs)
    assert stats.total_distance_meters == sum(
        leg.distance_meters for leg in legs if leg.resolved)
    assert stats.unresolved_legs == 1
    assert stats.resolved_legs == 2
    assert "1 leg(s) without route" in str(stats)


def test_aggregate_empty():
    assert aggregate([]) == TripStatistics(0.0, 0.0, 0, 0)


def test_leg_table(make_stops, straight_line):
    legs = _routed(make_stops, straight_line, (20_000.0, 70.0), None)
    table = leg_table(legs)
    assert list(table["leg"]) == [1, 2]
    assert table.loc[0, "distance"] == "20 km"
    assert table.loc[0, "duration"] == "1 hour 15 minutes"
    assert table.loc[1, "failure"] == "no route"
    assert table.loc[1, "distance"] == ""
