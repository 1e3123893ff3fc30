import math

from directory_sync.etl.geo import distance_miles
from directory_sync.models import GeoPoint

KATY = GeoPoint(lat=29.7859, lng=-95.8244)


def test_distance_to_self_is_zero():
    assert distance_miles(KATY, KATY) == 0.0


def test_distance_for_one_mile_of_latitude():
    north = GeoPoint(lat=KATY.lat + 0.0145, lng=KATY.lng)
    assert abs(distance_miles(KATY, north) - 1.0) <= 0.05


def test_distance_is_rounded_to_one_decimal():
    houston = GeoPoint(lat=29.7604, lng=-95.3698)
    distance = distance_miles(KATY, houston)
    assert distance == round(distance, 1)
    assert 26 < distance < 28


def test_distance_with_missing_point_is_nan():
    assert math.isnan(distance_miles(KATY, None))
    assert math.isnan(distance_miles(None, KATY))


def test_distance_with_out_of_range_coordinates_does_not_raise():
    distance = distance_miles(GeoPoint(lat=120.0, lng=0.0), GeoPoint(lat=-120.0, lng=180.0))
    assert 0 <= distance <= 12438.0
