"""
Haversine distance and radius checks, including the edges of the map.
"""

import pytest

from utils.geofence import EARTH_RADIUS_M, haversine_dist, measure

BRANCH = (12.9716, 77.5946)


def test_same_point_is_zero():
    assert haversine_dist(*BRANCH, *BRANCH) == 0


def test_distance_is_symmetric():
    a = (12.9716, 77.5946)
    b = (12.9800, 77.6050)
    assert haversine_dist(*a, *b) == pytest.approx(haversine_dist(*b, *a))


def test_one_degree_of_latitude():
    # 2 * pi * R / 360
    assert haversine_dist(0, 0, 1, 0) == pytest.approx(111_194.9, abs=0.5)


def test_bengaluru_scenario_is_outside_one_kilometre():
    distance, inside = measure(12.9800, 77.6050, *BRANCH, 1000)
    assert distance == pytest.approx(1464, rel=0.01)
    assert inside is False


def test_radius_boundary_is_inclusive():
    point = (12.9760, 77.5946)
    exact = haversine_dist(*point, *BRANCH)
    assert measure(*point, *BRANCH, exact) == (exact, True)
    assert measure(*point, *BRANCH, exact - 0.01)[1] is False


def test_across_the_antimeridian():
    # 0.001 degrees of longitude either side of 180 at the equator
    distance = haversine_dist(0, 179.9995, 0, -179.9995)
    assert distance == pytest.approx(111.19, abs=0.05)


def test_near_the_pole():
    # Same latitude, opposite longitudes, 0.001 degrees from the pole
    distance = haversine_dist(89.999, 0, 89.999, 180)
    assert distance == pytest.approx(2 * 111.19, abs=0.1)


def test_antipodal_points_do_not_blow_up():
    distance = haversine_dist(0, 0, 0, 180)
    assert distance == pytest.approx(3.141592653589793 * EARTH_RADIUS_M)
