import math

import pytest

from nearpair.core.geo import EARTH_RADIUS_M, convert_distance, haversine_m, to_meters


def test_haversine_one_degree_on_equator():
    expected = EARTH_RADIUS_M * math.radians(1)
    assert haversine_m(0, 0, 0, 1) == pytest.approx(expected, rel=1e-9)


def test_haversine_is_zero_for_same_point_and_symmetric():
    assert haversine_m(40.7128, -74.006, 40.7128, -74.006) == 0
    a = haversine_m(40.7128, -74.006, 34.0522, -118.2437)
    b = haversine_m(34.0522, -118.2437, 40.7128, -74.006)
    assert a == pytest.approx(b)
    # New York to Los Angeles is roughly 3,936 km on a spherical earth.
    assert a == pytest.approx(3_936_000, rel=0.01)


def test_haversine_handles_antipodal_points():
    assert haversine_m(0, 0, 0, 180) == pytest.approx(math.pi * EARTH_RADIUS_M, rel=1e-9)


def test_convert_distance_units():
    assert convert_distance(1000, "km") == pytest.approx(1.0)
    assert convert_distance(0.3048, "ft") == pytest.approx(1.0)
    assert convert_distance(1609.344, "mi") == pytest.approx(1.0)
    assert to_meters(60, "ft") == pytest.approx(18.288)


def test_convert_distance_rejects_unknown_unit():
    with pytest.raises(ValueError, match="Unknown distance unit"):
        convert_distance(1.0, "furlong")
