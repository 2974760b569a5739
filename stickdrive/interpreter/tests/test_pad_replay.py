import pytest

from stickdrive.core.types import DampingProfile, Direction, DragPhase, Steering
from stickdrive.interpreter.state_machine import PadInput


def replay_release(pad, t0, step=16, limit=2000):
    out = []
    t = t0
    while pad.phase == DragPhase.RETURNING and t <= t0 + limit:
        out.extend(pad.tick(t))
        t += step
    return out, t


def test_press_drag_release_scenario():
    pad = PadInput(damping=DampingProfile(0.5), center=(200, 200))
    seen = []
    pad.changes.subscribe(seen.append)

    # press at center
    out = pad.press(200, 200, t_ms=0)
    assert out == [Steering(Direction.STOP, 0.0)]
    assert pad.phase == DragPhase.DRAGGING

    # drag up-right beyond the radius
    out = pad.move(200 + 120, 200 - 160, t_ms=16)
    assert out[0].direction == Direction.FORWARD
    assert out[0].intensity == pytest.approx(100.0)
    assert pad.displacement.magnitude == pytest.approx(100.0)

    assert pad.release(t_ms=32) == []
    assert pad.phase == DragPhase.RETURNING

    ticks, _ = replay_release(pad, t0=48)
    assert pad.phase == DragPhase.IDLE
    assert ticks[-1] == Steering(Direction.STOP, 0.0)
    # exactly one terminal stop at zero intensity
    assert sum(1 for s in ticks if s == Steering(Direction.STOP, 0.0)) == 1
    # intensities decay while returning
    intensities = [s.intensity for s in ticks[:-1]]
    assert intensities == sorted(intensities, reverse=True)
    # every emission reached the subscriber
    assert seen[-len(ticks):] == ticks


def test_animation_runs_for_duration():
    pad = PadInput(damping=DampingProfile(0.5))
    pad.press(60, -80, t_ms=0)
    pad.release(t_ms=100)
    assert pad.tick(1099)
    assert pad.phase == DragPhase.RETURNING
    assert pad.tick(1100) == [Steering(Direction.STOP, 0.0)]
    assert pad.phase == DragPhase.IDLE


def test_move_ignored_when_not_dragging():
    pad = PadInput()
    assert pad.move(50, 0, t_ms=0) == []
    pad.press(50, 0, t_ms=0)
    pad.release(t_ms=10)
    assert pad.move(0, 50, t_ms=20) == []


def test_press_while_returning_cancels_animation():
    pad = PadInput(damping=DampingProfile(0.2))
    seen = []
    pad.changes.subscribe(seen.append)

    pad.press(100, 0, t_ms=0)
    pad.release(t_ms=10)
    pad.tick(50)
    assert pad.phase == DragPhase.RETURNING

    out = pad.press(0, 50, t_ms=60)
    assert out[0].direction == Direction.BACKWARD
    assert pad.phase == DragPhase.DRAGGING
    assert not pad.animating

    count = len(seen)
    # stale ticks past the old animation's end must not emit
    assert pad.tick(5000) == []
    assert len(seen) == count


def test_damping_is_read_at_release():
    current = {"c": 1.0}
    pad = PadInput(damping=lambda: DampingProfile(current["c"]))
    pad.press(80, 0, t_ms=0)
    current["c"] = 0.2
    pad.release(t_ms=0)
    # 0.2 -> 1000ms, so still returning at 600ms
    pad.tick(600)
    assert pad.phase == DragPhase.RETURNING


def test_reset_and_close_are_silent():
    pad = PadInput()
    seen = []
    pad.changes.subscribe(seen.append)
    pad.press(80, 0, t_ms=0)
    pad.release(t_ms=5)
    pad.reset()
    assert pad.phase == DragPhase.IDLE
    assert pad.tick(2000) == []

    n = len(seen)
    pad.close()
    assert pad.press(10, 10, t_ms=10) == []
    assert len(seen) == n
    assert len(pad.changes) == 0


def test_hit_test_uses_surface_radius():
    pad = PadInput(center=(500, 500))
    assert pad.hit(500 + 120, 500)
    assert not pad.hit(500 + 200, 500)


def test_identical_runs_emit_identical_sequences():
    def run():
        pad = PadInput(damping=DampingProfile(0.7))
        out = pad.press(-40, -60, t_ms=0)
        out += pad.move(-90, -20, t_ms=16)
        pad.release(t_ms=32)
        ticks, _ = replay_release(pad, t0=48)
        return out + ticks

    assert run() == run()
