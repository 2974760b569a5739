import math

import pytest

from stickdrive.core.config import PadGeometry
from stickdrive.core.types import Direction, Displacement
from stickdrive.interpreter.geometry import map_displacement, normalize_angle, sector_for_angle


@pytest.mark.parametrize("d", [(0, 0), (3, 4), (-5, 5), (0, -9.9)])
def test_inside_min_move_is_stop_with_intensity(d):
    disp = Displacement(*d)
    out = map_displacement(disp)
    assert out.direction == Direction.STOP
    assert out.intensity == pytest.approx(disp.magnitude / 100.0 * 100.0)


def test_full_deflection_is_100():
    assert map_displacement(Displacement(100, 0)).intensity == 100.0
    # unclamped input still caps at 100
    assert map_displacement(Displacement(300, 400)).intensity == 100.0


def test_sector_boundaries():
    assert map_displacement(Displacement(10, 0)).direction == Direction.TURN_RIGHT
    assert map_displacement(Displacement(0, -10)).direction == Direction.FORWARD
    assert map_displacement(Displacement(-10, 0)).direction == Direction.TURN_LEFT
    assert map_displacement(Displacement(0, 10)).direction == Direction.BACKWARD


def test_sector_edges_are_half_open():
    assert sector_for_angle(-45.0) == Direction.TURN_RIGHT
    assert sector_for_angle(45.0) == Direction.FORWARD
    assert sector_for_angle(135.0) == Direction.TURN_LEFT
    assert sector_for_angle(-135.0) == Direction.BACKWARD
    assert sector_for_angle(180.0) == Direction.TURN_LEFT
    assert sector_for_angle(-180.0) == Direction.TURN_LEFT


def test_normalize_angle_range():
    for a in (-540.0, -180.0, 0.0, 179.9, 180.0, 359.0, 725.0):
        n = normalize_angle(a)
        assert -180.0 <= n < 180.0


def test_upper_right_diagonal_is_forward():
    # atan2(80, 60) = 53.13 deg
    out = map_displacement(Displacement(60, -80))
    assert math.degrees(math.atan2(80, 60)) == pytest.approx(53.13, abs=0.01)
    assert out.direction == Direction.FORWARD
    assert out.intensity == pytest.approx(100.0)


def test_custom_geometry_radius():
    geo = PadGeometry(radius=50.0, min_move=5.0)
    out = map_displacement(Displacement(0, 25), geo)
    assert out.direction == Direction.BACKWARD
    assert out.intensity == pytest.approx(50.0)
