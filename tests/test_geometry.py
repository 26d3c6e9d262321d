from types import SimpleNamespace

import pytest

from survey_mapper.geometry import ContainerRect, Point, clamp, pointer_position, to_device, to_normalized


RECT = ContainerRect(left=100, top=50, width=400, height=200)


def test_to_normalized_maps_rect_corners_to_0_and_100():
    assert to_normalized((100, 50), RECT) == Point(0.0, 0.0)
    assert to_normalized((500, 250), RECT) == Point(100.0, 100.0)
    assert to_normalized((300, 150), RECT) == Point(50.0, 50.0)


def test_to_normalized_does_not_clamp():
    p = to_normalized((40, 300), RECT)
    assert p.x == pytest.approx(-15.0)
    assert p.y == pytest.approx(125.0)


def test_to_normalized_rejects_empty_rect():
    with pytest.raises(ValueError):
        to_normalized((0, 0), ContainerRect(0, 0, 0, 10))


def test_to_device_inverts_to_normalized():
    assert to_device(Point(25.0, 75.0), RECT) == (200.0, 200.0)


def test_clamp_bounds_each_axis():
    assert clamp(Point(-5, 120)) == Point(0.0, 100.0)
    assert clamp(Point(33.3, 66.6)) == Point(33.3, 66.6)


def test_pointer_position_uses_first_touch():
    evt = SimpleNamespace(touches=[SimpleNamespace(client_x=10, client_y=20),
                                   SimpleNamespace(client_x=99, client_y=99)])
    assert pointer_position(evt) == (10.0, 20.0)


def test_pointer_position_falls_back_to_root_coordinates():
    evt = SimpleNamespace(x_root=7, y_root=8, x=1, y=2)
    assert pointer_position(evt) == (7.0, 8.0)


def test_pointer_position_without_coordinates_raises():
    with pytest.raises(ValueError):
        pointer_position(SimpleNamespace())
