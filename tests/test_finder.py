import math
import random
import threading

import pytest

from nearpair.core.geo import EARTH_RADIUS_M, haversine_m
from nearpair.domain.models import GeoPoint
from nearpair.errors import Cancelled, DuplicatePointId, EmptyInput, InvalidArgument, InvalidCoordinate
from nearpair.neighbors.finder import filter_close_pairs, find_nearest_pairs, mutual_pairs


def _abc():
    return [
        GeoPoint(id="A", lat=0, lon=0),
        GeoPoint(id="B", lat=0, lon=1),
        GeoPoint(id="C", lat=0, lon=10),
    ]


def test_three_point_scenario_matches_haversine():
    results = find_nearest_pairs(_abc())

    assert [(r.source_id, r.nearest_id) for r in results] == [("A", "B"), ("B", "A"), ("C", "B")]
    assert results[0].distance_m == pytest.approx(haversine_m(0, 0, 0, 1), rel=1e-6)
    assert results[1].distance_m == pytest.approx(haversine_m(0, 1, 0, 0), rel=1e-6)
    assert results[2].distance_m == pytest.approx(haversine_m(0, 10, 0, 1), rel=1e-6)
    assert results[2].distance_m == pytest.approx(EARTH_RADIUS_M * math.radians(9), rel=1e-6)
    assert (results[2].nearest_lat, results[2].nearest_lon) == (0, 1)


def test_one_result_per_point_in_input_order_and_never_self():
    rng = random.Random(7)
    points = [GeoPoint(id=f"p{i}", lat=rng.uniform(-60, 60), lon=rng.uniform(-170, 170)) for i in range(40)]

    results = find_nearest_pairs(points)

    assert [r.source_id for r in results] == [p.id for p in points]
    assert all(r.nearest_id != r.source_id for r in results)
    assert all(r.distance_m >= 0 for r in results)


def test_two_points_are_each_others_neighbor_with_equal_distance():
    results = find_nearest_pairs([("x", 51.5074, -0.1278), ("y", 48.8566, 2.3522)])

    assert [(r.source_id, r.nearest_id) for r in results] == [("x", "y"), ("y", "x")]
    assert results[0].distance_m == pytest.approx(results[1].distance_m)
    assert results[0].distance_m == pytest.approx(haversine_m(51.5074, -0.1278, 48.8566, 2.3522))


def test_ties_go_to_the_first_candidate_in_input_order():
    points = [
        GeoPoint(id="center", lat=0, lon=0),
        GeoPoint(id="east", lat=0, lon=1),
        GeoPoint(id="west", lat=0, lon=-1),
    ]
    assert find_nearest_pairs(points)[0].nearest_id == "east"

    reordered = [points[0], points[2], points[1]]
    assert find_nearest_pairs(reordered)[0].nearest_id == "west"


def test_nearest_relation_need_not_be_mutual():
    points = [("A", 0, 0), ("B", 0, 1), ("C", 0, 2.5)]

    results = find_nearest_pairs(points)

    by_id = {r.source_id: r.nearest_id for r in results}
    assert by_id == {"A": "B", "B": "A", "C": "B"}
    assert by_id[by_id["C"]] != "C"
    assert mutual_pairs(results) == [("A", "B")]


def test_results_are_deterministic():
    points = [("a", 10, 10), ("b", 10, 11), ("c", 11, 10), ("d", 9, 10)]
    assert find_nearest_pairs(points) == find_nearest_pairs(points)


def test_parallel_scan_matches_sequential_scan():
    rng = random.Random(42)
    points = [GeoPoint(id=str(i), lat=rng.uniform(-80, 80), lon=rng.uniform(-180, 180)) for i in range(101)]

    assert find_nearest_pairs(points, workers=4) == find_nearest_pairs(points)
    # More workers than points is fine.
    assert find_nearest_pairs(points[:3], workers=8) == find_nearest_pairs(points[:3])


def test_coincident_points_have_zero_distance():
    results = find_nearest_pairs([("a", 1, 1), ("b", 1, 1), ("c", 5, 5)])
    assert results[0].nearest_id == "b"
    assert results[0].distance_m == 0


def test_accepts_mappings_and_tuples_with_labels():
    results = find_nearest_pairs(
        [
            {"id": 1, "lat": "37.77", "lon": "-122.42", "label": "Starbucks"},
            (2, 37.78, -122.41, "Starbucks Reserve"),
        ]
    )
    assert [(r.source_id, r.label) for r in results] == [("1", "Starbucks"), ("2", "Starbucks Reserve")]


@pytest.mark.parametrize(
    "bad",
    [
        ("bad", 200, 0),
        ("bad", 0, -181),
        ("bad", "north", 0),
        ("bad", float("nan"), 0),
        ("bad", None, 0),
        ("bad", True, 0),
        ("bad", 0, False),
    ],
)
def test_invalid_coordinates_fail_the_whole_call(bad):
    with pytest.raises(InvalidCoordinate, match=r"point #1"):
        find_nearest_pairs([("ok", 0, 0), bad, ("ok2", 1, 1)])


def test_fewer_than_two_points_is_empty_input():
    with pytest.raises(EmptyInput):
        find_nearest_pairs([("only", 0, 0)])
    with pytest.raises(EmptyInput):
        find_nearest_pairs([])


def test_duplicate_ids_are_rejected():
    with pytest.raises(DuplicatePointId, match="'a'"):
        find_nearest_pairs([("a", 0, 0), ("b", 0, 1), ("a", 0, 2)])


def test_errors_are_value_errors_for_plain_callers():
    with pytest.raises(ValueError):
        find_nearest_pairs([("a", 200, 0), ("b", 0, 0)])


def test_workers_must_be_positive():
    with pytest.raises(InvalidArgument, match="workers"):
        find_nearest_pairs(_abc(), workers=0)


@pytest.mark.parametrize("workers", [1, 3])
def test_cancel_event_aborts_without_results(workers):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(Cancelled):
        find_nearest_pairs(_abc(), workers=workers, cancel_event=cancel)


def test_filter_close_pairs_keeps_order_and_threshold_is_inclusive():
    results = find_nearest_pairs(_abc())
    one_degree = results[0].distance_m

    close = filter_close_pairs(results, one_degree)

    assert [r.source_id for r in close] == ["A", "B"]
    with pytest.raises(InvalidArgument):
        filter_close_pairs(results, -1)
