import pytest

from stickdrive.core.config import PRESETS, PresetName
from stickdrive.core.control import ControlPlane, RotationKind, derive_control_state, derive_speed
from stickdrive.core.types import DampingProfile, Direction, Displacement, Steering


@pytest.mark.parametrize("intensity,max_speed,speed", [
    (100.0, 50, 50),
    (50.0, 50, 25),
    (19.9, 50, 0),   # floor(9.95) falls in the dead zone
    (20.0, 50, 10),
    (33.3, 70, 23),
    (0.0, 100, 0),
])
def test_derive_speed(intensity, max_speed, speed):
    assert derive_speed(intensity, max_speed) == speed


def test_stop_always_zero():
    s = derive_control_state(Steering(Direction.STOP, 80.0), 100)
    assert (s.direction, s.intensity, s.speed) == (Direction.STOP, 0.0, 0)


def test_max_speed_and_damping_are_clamped():
    cp = ControlPlane()
    assert cp.set_max_speed(140) == 100
    assert cp.set_max_speed(-3) == 0
    assert cp.set_damping(0.05) == DampingProfile.MIN
    assert cp.set_damping(0.73) == 0.7
    assert cp.damping().coefficient == 0.7


def test_toggle_and_queued_actions():
    cp = ControlPlane()
    assert cp.toggle() is True
    assert cp.is_powered()
    cp.request_rotation(RotationKind.LEFT)
    cp.request_rotation(RotationKind.U_TURN)
    assert cp.drain_rotations() == [RotationKind.LEFT, RotationKind.U_TURN]
    assert cp.drain_rotations() == []
    cp.request_emergency_stop()
    assert cp.take_emergency_stop() is True
    assert cp.take_emergency_stop() is False


def test_damping_profile_range():
    with pytest.raises(ValueError):
        DampingProfile(0.1)
    with pytest.raises(ValueError):
        DampingProfile(1.5)
    assert DampingProfile().coefficient == 0.5


def test_displacement_helpers():
    d = Displacement(300.0, -400.0)
    assert d.magnitude == 500.0
    c = d.clamped(100.0)
    assert c.x == pytest.approx(60.0) and c.y == pytest.approx(-80.0)
    assert Displacement(3.0, 4.0).clamped(100.0) == Displacement(3.0, 4.0)


def test_presets_are_consistent():
    for name, preset in PRESETS.items():
        assert preset.name == name
        DampingProfile(preset.damping)
        assert 0 <= preset.max_speed <= 100
    assert PRESETS[PresetName.DEFAULT].throttle.min_interval_ms == 50
