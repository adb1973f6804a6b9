import pytest

from pronto.domain.geo import Bounds, compute_bounds, step_towards
from pronto.domain.models import Location

from conftest import BUSINESS_LOCATION, CLIENT_LOCATION, COURIER_LOCATION, DEFAULT_CENTER


def test_bounds_contain_every_point():
    view = compute_bounds(
        CLIENT_LOCATION, BUSINESS_LOCATION, COURIER_LOCATION, default_center=DEFAULT_CENTER
    )
    assert view.center is None
    assert view.zoom is None
    for point in (CLIENT_LOCATION, BUSINESS_LOCATION, COURIER_LOCATION):
        assert view.bounds.contains(point)


def test_bounds_are_tight():
    view = compute_bounds(CLIENT_LOCATION, BUSINESS_LOCATION, default_center=DEFAULT_CENTER)
    assert view.bounds == Bounds(
        south=BUSINESS_LOCATION.lat,
        west=CLIENT_LOCATION.lng,
        north=CLIENT_LOCATION.lat,
        east=BUSINESS_LOCATION.lng,
    )


def test_single_point_gives_degenerate_bounds():
    view = compute_bounds(delivery=COURIER_LOCATION, default_center=DEFAULT_CENTER)
    assert view.bounds.south == view.bounds.north == COURIER_LOCATION.lat
    assert view.bounds.contains(COURIER_LOCATION)


def test_no_points_falls_back_to_default_view():
    view = compute_bounds(default_center=DEFAULT_CENTER, default_zoom=13)
    assert view.bounds is None
    assert view.center == DEFAULT_CENTER
    assert view.zoom == 13


def test_step_towards_moves_five_percent():
    start = Location(lat=0.0, lng=0.0)
    target = Location(lat=10.0, lng=-20.0)

    moved = step_towards(start, target)

    assert moved.lat == pytest.approx(0.5)
    assert moved.lng == pytest.approx(-1.0)


def test_step_towards_never_overshoots():
    position = COURIER_LOCATION
    for _ in range(200):
        position = step_towards(position, CLIENT_LOCATION)
    assert position.lat == pytest.approx(CLIENT_LOCATION.lat, abs=1e-5)
    assert position.lng == pytest.approx(CLIENT_LOCATION.lng, abs=1e-5)
    assert min(COURIER_LOCATION.lat, CLIENT_LOCATION.lat) <= position.lat <= max(COURIER_LOCATION.lat, CLIENT_LOCATION.lat)


def test_step_at_destination_stays_put():
    assert step_towards(CLIENT_LOCATION, CLIENT_LOCATION) == CLIENT_LOCATION
