from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from stickdrive.core.config import DEFAULT_PRESET, Preset
from stickdrive.core.control import ControlPlane, RotationKind
from stickdrive.core.events import Disposables
from stickdrive.core.types import ChassisResponse, ChassisStatus, SignalReading, Steering
from stickdrive.dispatch.dispatcher import CommandDispatcher
from stickdrive.dispatch.power_gate import PowerGate
from stickdrive.health.sampler import HealthSampler
from stickdrive.interpreter.state_machine import PadInput
from stickdrive.link.channel import ChannelError, CommandChannel
from stickdrive.link.loopback import LoopbackChannel
from stickdrive.runtime.command_log import CommandLog
from stickdrive.runtime.profile import OperatorProfile

ROTATION_LABELS = {
    RotationKind.LEFT: "turn left 90",
    RotationKind.RIGHT: "turn right 90",
    RotationKind.U_TURN: "u-turn",
}


def now_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass(frozen=True)
class PointerEvent:
    kind: str   # "press" | "move" | "release"
    x: float
    y: float
    t_ms: int


def make_channel(profile: OperatorProfile, preset: Preset = DEFAULT_PRESET) -> CommandChannel:
    if profile.transport == "socket":
        from stickdrive.link.socket_channel import SocketChannel
        return SocketChannel(url=profile.socket_url, settings=preset.channel,
                             ping_timeout_s=preset.health.timeout_s)
    if profile.transport == "loopback":
        return LoopbackChannel()
    from stickdrive.link.http_channel import HttpChannel
    return HttpChannel(base_url=profile.http_base_url, settings=preset.channel,
                       ping_timeout_s=preset.health.timeout_s)


class ControlLoop:
    """
    Single-threaded cooperative driver.

    Everything core (pad, animator, dispatcher, sampler) is touched only from
    the asyncio loop. Other threads hand over pointer events through
    post_pointer() and operator settings through the ControlPlane.
    """

    def __init__(
        self,
        channel: CommandChannel,
        control: ControlPlane,
        preset: Preset = DEFAULT_PRESET,
        center: Tuple[float, float] = (0.0, 0.0),
        log: CommandLog | None = None,
        on_signal: Callable[[SignalReading], None] | None = None,
    ) -> None:
        self.channel = channel
        self.control = control
        self.preset = preset
        self.pad = PadInput(preset.pad, damping=control.damping, center=center, bounds=preset.damping_bounds)
        self.dispatcher = CommandDispatcher(channel, control, preset.throttle, preset.rotation)
        self.gate = PowerGate(control=control, dispatcher=self.dispatcher, pad=self.pad)
        self.sampler = HealthSampler(channel, preset.health)
        self.log = log or CommandLog(preset.log, echo=False)

        self._queue: asyncio.Queue[PointerEvent] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._emitted: List[Tuple[Steering, int]] = []
        self._emit_t = 0
        self._disposables = Disposables()
        self._disposables.add(self.pad.changes.subscribe(self._on_steering))
        if on_signal is not None:
            self._disposables.add(self.sampler.readings.subscribe(on_signal))

        # chassis feed: only persistent bindings publish one
        self.chassis_status: ChassisStatus | None = None
        responses = getattr(channel, "responses", None)
        if responses is not None:
            self._disposables.add(responses.subscribe(self._on_chassis_response))
        status = getattr(channel, "status", None)
        if status is not None:
            self._disposables.add(status.subscribe(self._on_chassis_status))
        self._closed = False

    # ---------------------- inputs ----------------------

    def post_pointer(self, ev: PointerEvent) -> None:
        """Thread-safe: may be called from listener threads."""
        if self._loop is None:
            self._queue.put_nowait(ev)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, ev)

    def _on_steering(self, steering: Steering) -> None:
        self._emitted.append((steering, self._emit_t))

    def _on_chassis_response(self, resp: ChassisResponse) -> None:
        msg = f"chassis response: {resp.code}"
        if resp.message:
            msg += f" - {resp.message}"
        self.log.add(msg)

    def _on_chassis_status(self, status: ChassisStatus) -> None:
        if status != self.chassis_status:
            print(f"[Chassis] {status.direction or '-'} speed {status.speed:.0f} "
                  f"{'running' if status.is_running else 'idle'}")
        self.chassis_status = status

    def _apply_pointer(self, ev: PointerEvent) -> None:
        self._emit_t = ev.t_ms
        if ev.kind == "press":
            if self.pad.hit(ev.x, ev.y):
                self.pad.press(ev.x, ev.y, ev.t_ms)
        elif ev.kind == "move":
            self.pad.move(ev.x, ev.y, ev.t_ms)
        elif ev.kind == "release":
            self.pad.release(ev.t_ms)

    # ---------------------- one loop iteration ----------------------

    async def step(self, t_ms: int) -> None:
        power = await self.gate.guard()
        if power is not None:
            label = f"power {'on' if self.control.is_powered() else 'off'}"
            self.log.record(power, label, t_ms=t_ms)

        if self.control.take_emergency_stop():
            out = await self.dispatcher.emergency_stop()
            self.log.record(out, "emergency stop", t_ms=t_ms)

        for kind in self.control.drain_rotations():
            out = await self.dispatcher.rotate(kind, t_ms=t_ms)
            self.log.record(out, f"{ROTATION_LABELS[kind]} - speed: {out.speed}", t_ms=t_ms)

        while not self._queue.empty():
            self._apply_pointer(self._queue.get_nowait())

        self._emit_t = t_ms
        self.pad.tick(t_ms)

        emitted, self._emitted = self._emitted, []
        for steering, t in emitted:
            out = await self.dispatcher.drive(steering, t_ms=t)
            self.log.record_drive(out, t_ms=t)

        for out in await self.dispatcher.tick(t_ms):
            self.log.record(out, "auto stop", t_ms=t_ms)

    # ---------------------- tasks ----------------------

    async def run(self, stop: asyncio.Event, hz: float = 60.0) -> None:
        self._loop = asyncio.get_running_loop()
        await self.connect()
        self.sampler.activate(now_ms())
        health = asyncio.create_task(self._health_loop(stop))
        period = 1.0 / hz
        try:
            while not stop.is_set():
                await self.step(now_ms())
                await asyncio.sleep(period)
        finally:
            health.cancel()
            try:
                await health
            except asyncio.CancelledError:
                pass
            await self.shutdown()

    async def _health_loop(self, stop: asyncio.Event) -> None:
        retry_at = 0
        while not stop.is_set():
            t = now_ms()
            if not self.channel.is_connected() and t >= retry_at:
                retry_at = t + self.preset.health.period_ms
                await self.connect()
            await self.sampler.tick(t)
            await asyncio.sleep(0.1)

    async def connect(self) -> None:
        """Connect the channel and ask a persistent binding for the chassis status."""
        try:
            await self.channel.connect()
        except ChannelError as e:
            print(f"[Link] {e}")
            return

        request_status = getattr(self.channel, "request_status", None)
        if request_status is None or not self.channel.is_connected():
            return
        try:
            await request_status()
        except ChannelError as e:
            print(f"[Link] status request failed: {e}")

    async def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.pad.close()
        self.dispatcher.cancel_pending()
        self.sampler.deactivate()
        self._disposables.dispose()
        if self.control.is_powered():
            out = await self.gate.shutdown()
            if out is not None:
                self.log.record(out, "power off", t_ms=now_ms())
        await self.channel.close()
        self.log.close()


@dataclass
class FakePointer:
    """
    Deterministic fake pointer to validate runtime wiring.
    Drags in a slow circle for 2 seconds, lets go for 2 seconds.
    """
    start_ms: int
    center: Tuple[float, float] = (0.0, 0.0)
    _down: bool = False

    def events(self, t_ms: int) -> List[PointerEvent]:
        dt = (t_ms - self.start_ms) / 1000.0
        held = int(dt) % 4 in (0, 1)
        cx, cy = self.center
        angle = dt * math.pi / 2.0
        x = cx + 90.0 * math.cos(angle)
        y = cy - 90.0 * math.sin(angle)

        if held and not self._down:
            self._down = True
            return [PointerEvent("press", x, y, t_ms)]
        if held:
            return [PointerEvent("move", x, y, t_ms)]
        if self._down:
            self._down = False
            return [PointerEvent("release", x, y, t_ms)]
        return []


async def _run_fake(channel: CommandChannel, control: ControlPlane, seconds: Optional[float]) -> None:
    loop = ControlLoop(channel, control, log=CommandLog.from_env())
    src = FakePointer(start_ms=now_ms())
    stop = asyncio.Event()

    async def feed():
        t0 = time.monotonic()
        while not stop.is_set():
            for ev in src.events(now_ms()):
                loop.post_pointer(ev)
            if seconds is not None and time.monotonic() - t0 >= seconds:
                stop.set()
            await asyncio.sleep(0.016)

    feeder = asyncio.create_task(feed())
    try:
        await loop.run(stop)
    finally:
        stop.set()
        await feeder


def run(seconds: Optional[float] = None) -> None:
    control = ControlPlane(_powered=True)
    channel = LoopbackChannel(latency_s=0.005)

    print("[StickDrive] Runtime loop (FAKE POINTER, loopback channel). Ctrl+C to exit.")
    try:
        asyncio.run(_run_fake(channel, control, seconds))
    except KeyboardInterrupt:
        print("\n[StickDrive] exiting")
    print(f"[StickDrive] loopback saw {len(channel.sent)} commands")


if __name__ == "__main__":
    run()
