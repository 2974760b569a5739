import asyncio

import pytest

from stickdrive.core.control import ControlPlane, RotationKind
from stickdrive.core.types import ChannelReply, Direction, DispatchStatus, Steering
from stickdrive.dispatch.dispatcher import CommandDispatcher
from stickdrive.link.channel import ChannelError
from stickdrive.link.loopback import LoopbackChannel


class StepClock:
    """perf_counter stand-in: every read advances by `step` seconds."""

    def __init__(self, step=0.0):
        self.t = 100.0
        self.step = step

    def __call__(self):
        now = self.t
        self.t += self.step
        return now


class CountingChannel(LoopbackChannel):
    def __init__(self, **kw):
        super().__init__(**kw)
        self.calls = 0

    async def send(self, symbol, speed):
        self.calls += 1
        return await super().send(symbol, speed)


class RejectingChannel(LoopbackChannel):
    reject = True

    async def send(self, symbol, speed):
        if self.reject:
            return ChannelReply(ok=False, code="busy", message="chassis busy")
        return await super().send(symbol, speed)


def make(powered=True, connected=True, channel=None, clock=None, max_speed=50):
    ch = channel or CountingChannel()
    ch.set_connected(connected)
    control = ControlPlane(_powered=powered, _max_speed=max_speed)
    disp = CommandDispatcher(ch, control, clock=clock or StepClock())
    return disp, ch, control


def run(coro):
    return asyncio.run(coro)


def test_throttle_sent_then_skipped():
    disp, ch, _ = make()
    a = run(disp.dispatch(Direction.FORWARD, 40, t_ms=1000))
    b = run(disp.dispatch(Direction.FORWARD, 40, t_ms=1049))
    assert a.status == DispatchStatus.SENT
    assert b.status == DispatchStatus.SKIPPED
    assert ch.sent == [("forward", 40)]


def test_throttle_sent_then_sent():
    disp, ch, _ = make()
    a = run(disp.dispatch(Direction.FORWARD, 40, t_ms=1000))
    b = run(disp.dispatch(Direction.BACKWARD, 30, t_ms=1050))
    assert a.status == b.status == DispatchStatus.SENT
    assert ch.sent == [("forward", 40), ("reverse", 30)]


def test_throttle_is_per_instance():
    a, ch_a, _ = make()
    b, ch_b, _ = make()
    run(a.dispatch(Direction.FORWARD, 40, t_ms=0))
    assert run(b.dispatch(Direction.FORWARD, 40, t_ms=1)).status == DispatchStatus.SENT


def test_powered_off_is_gated_not_skipped():
    disp, ch, _ = make(powered=False)
    out = run(disp.dispatch(Direction.FORWARD, 40, t_ms=0))
    assert out.status == DispatchStatus.GATED
    assert out.status not in (DispatchStatus.SENT, DispatchStatus.SKIPPED)
    assert ch.calls == 0


def test_disconnected_short_circuits():
    disp, ch, _ = make(connected=False, clock=StepClock(step=0.5))
    out = run(disp.dispatch(Direction.FORWARD, 40, t_ms=0))
    assert out.status == DispatchStatus.FAILED
    assert out.elapsed_ms == pytest.approx(0.0)
    assert ch.calls == 0
    # no throttle stamp was taken: a connected send right after goes out
    ch.set_connected(True)
    assert run(disp.dispatch(Direction.FORWARD, 40, t_ms=10)).status == DispatchStatus.SENT


def test_transport_error_reports_elapsed_without_retry():
    ch = CountingChannel(fail_sends=True)
    disp, ch, _ = make(channel=ch, clock=StepClock(step=0.012))
    out = run(disp.dispatch(Direction.TURN_LEFT, 20, t_ms=0))
    assert out.status == DispatchStatus.FAILED
    assert out.elapsed_ms == pytest.approx(12.0)
    assert "loopback" in out.error
    assert ch.calls == 1


def test_failed_send_does_not_open_throttle_window():
    ch = CountingChannel(fail_sends=True)
    disp, ch, _ = make(channel=ch)
    first = run(disp.dispatch(Direction.FORWARD, 40, t_ms=1000))
    assert first.status == DispatchStatus.FAILED
    ch.fail_sends = False
    second = run(disp.dispatch(Direction.FORWARD, 40, t_ms=1020))
    assert second.status == DispatchStatus.SENT
    assert ch.sent == [("forward", 40)]


def test_rejected_reply_does_not_open_throttle_window():
    disp, ch, _ = make(channel=RejectingChannel())
    run(disp.dispatch(Direction.FORWARD, 10, t_ms=0))
    ch.reject = False
    assert run(disp.dispatch(Direction.FORWARD, 10, t_ms=20)).status == DispatchStatus.SENT


def test_rejected_reply_is_failure_with_code():
    disp, _, _ = make(channel=RejectingChannel())
    out = run(disp.dispatch(Direction.FORWARD, 10, t_ms=0))
    assert out.status == DispatchStatus.FAILED
    assert out.code == "busy"


def test_elapsed_measured_on_success():
    disp, _, _ = make(clock=StepClock(step=0.02))
    out = run(disp.dispatch(Direction.FORWARD, 10, t_ms=0))
    assert out.ok
    assert out.elapsed_ms == pytest.approx(20.0)


def test_symbol_table_and_fallback():
    disp, ch, _ = make()
    assert disp.symbol_for(Direction.FORWARD) == "forward"
    assert disp.symbol_for(Direction.BACKWARD) == "reverse"
    assert disp.symbol_for(Direction.TURN_LEFT) == "turn_left"
    assert disp.symbol_for(Direction.TURN_RIGHT) == "turn_right"
    assert disp.symbol_for(Direction.STOP) == "pause"
    assert disp.symbol_for("TURN_LEFT") == "turn_left"
    assert disp.symbol_for("sideways") == ch.fallback_symbol
    out = run(disp.dispatch("sideways", 50, t_ms=0))
    assert out.ok
    assert ch.sent == [("pause", 50)]


def test_speed_is_rounded_and_clamped():
    disp, ch, _ = make()
    run(disp.dispatch(Direction.FORWARD, 140.4, t_ms=0))
    run(disp.dispatch(Direction.FORWARD, 33.6, t_ms=100))
    assert ch.sent == [("forward", 100), ("forward", 34)]


def test_drive_derives_speed_from_max_speed():
    disp, ch, _ = make(max_speed=50)
    run(disp.drive(Steering(Direction.FORWARD, 100.0), t_ms=0))
    run(disp.drive(Steering(Direction.FORWARD, 15.0), t_ms=100))
    run(disp.drive(Steering(Direction.STOP, 8.0), t_ms=200))
    assert ch.sent == [("forward", 50), ("forward", 0), ("pause", 0)]


def test_power_bypasses_gate_and_throttle():
    disp, ch, control = make(powered=False)
    run(disp.dispatch(Direction.FORWARD, 40, t_ms=0))
    on = run(disp.power(True))
    assert on.ok
    control.set_powered(True)
    run(disp.dispatch(Direction.FORWARD, 40, t_ms=0))
    off = run(disp.power(False))
    assert off.ok
    assert ch.sent == [("start", 0), ("forward", 40), ("stop", 0)]


def test_power_still_fails_when_disconnected():
    disp, ch, _ = make(connected=False)
    assert run(disp.power(True)).status == DispatchStatus.FAILED
    assert ch.calls == 0


def test_rotation_schedules_single_auto_stop():
    disp, ch, _ = make()
    out = run(disp.rotate(RotationKind.LEFT, t_ms=1000))
    assert out.ok
    assert ch.sent == [("turn_left", 20)]
    assert run(disp.tick(3999)) == []
    stops = run(disp.tick(4000))
    assert [s.symbol for s in stops] == ["pause"]
    assert run(disp.tick(9000)) == []
    assert ch.sent[-1] == ("pause", 0)


def test_u_turn_holds_longer():
    disp, ch, _ = make()
    run(disp.rotate(RotationKind.U_TURN, t_ms=0))
    assert ch.sent == [("turn_right", 20)]
    assert run(disp.tick(3000)) == []
    assert len(run(disp.tick(6000))) == 1


def test_auto_stop_ignores_throttle():
    disp, ch, _ = make()
    run(disp.rotate(RotationKind.RIGHT, t_ms=0))
    run(disp.dispatch(Direction.FORWARD, 30, t_ms=2990))
    stops = run(disp.tick(3000))
    assert stops[0].status == DispatchStatus.SENT


def test_rotation_gated_when_off_and_nothing_scheduled():
    disp, ch, _ = make(powered=False)
    out = run(disp.rotate(RotationKind.LEFT, t_ms=0))
    assert out.status == DispatchStatus.GATED
    assert disp.pending_stops == 0


def test_cancel_pending_drops_auto_stops():
    disp, ch, _ = make()
    run(disp.rotate(RotationKind.LEFT, t_ms=0))
    disp.cancel_pending()
    assert run(disp.tick(10_000)) == []
    assert ch.sent == [("turn_left", 20)]


def test_emergency_stop_goes_straight_to_channel():
    disp, ch, _ = make()
    run(disp.dispatch(Direction.FORWARD, 30, t_ms=0))
    out = run(disp.emergency_stop())
    assert out.ok
    assert ch.sent[-1] == ("emergency_stop", 0)


def test_channel_error_type_carries_code():
    err = ChannelError("boom", code="503")
    assert err.code == "503"
    assert str(err) == "boom"
