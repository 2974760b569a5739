from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List

from stickdrive.core.config import RotationTuning, ThrottleTuning
from stickdrive.core.control import ControlPlane, RotationKind, derive_control_state
from stickdrive.core.types import (
    ControlState, Direction, DispatchOutcome, DispatchStatus, Steering, clamp,
)
from stickdrive.link.channel import POWER_OFF, POWER_ON, ChannelError, CommandChannel

DIRECTION_SYMBOLS: Dict[Direction, str] = {
    Direction.FORWARD: "forward",
    Direction.BACKWARD: "reverse",
    Direction.TURN_LEFT: "turn_left",
    Direction.TURN_RIGHT: "turn_right",
    Direction.STOP: "pause",
}

ROTATION_DIRECTIONS: Dict[RotationKind, Direction] = {
    RotationKind.LEFT: Direction.TURN_LEFT,
    RotationKind.RIGHT: Direction.TURN_RIGHT,
    RotationKind.U_TURN: Direction.TURN_RIGHT,
}


@dataclass
class _PendingStop:
    due_ms: int
    kind: RotationKind


class CommandDispatcher:
    """
    Throttled, power-gated command sender.

    Never raises for transport problems: every call returns a DispatchOutcome.
    Throttle state is per instance, so two pads never throttle each other.
    """

    def __init__(
        self,
        channel: CommandChannel,
        control: ControlPlane,
        throttle: ThrottleTuning = ThrottleTuning(),
        rotation: RotationTuning = RotationTuning(),
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.channel = channel
        self.control = control
        self.throttle = throttle
        self.rotation = rotation
        self._clock = clock
        self._last_send_ms: int | None = None
        self._pending_stops: List[_PendingStop] = []

    # ---------------------- symbols ----------------------

    def symbol_for(self, direction) -> str:
        if isinstance(direction, Direction):
            return DIRECTION_SYMBOLS[direction]
        try:
            return DIRECTION_SYMBOLS[Direction(direction)]
        except ValueError:
            return self.channel.fallback_symbol

    # ---------------------- drive path ----------------------

    async def dispatch(self, direction, speed: float, t_ms: int | None = None) -> DispatchOutcome:
        symbol = self.symbol_for(direction)
        speed_i = int(clamp(round(speed), 0, 100))

        if not self.control.is_powered():
            return DispatchOutcome(DispatchStatus.GATED, symbol, speed_i)

        if t_ms is None:
            t_ms = self._now_ms()
        if self._last_send_ms is not None and (t_ms - self._last_send_ms) < self.throttle.min_interval_ms:
            return DispatchOutcome(DispatchStatus.SKIPPED, symbol, speed_i)

        return await self._send(symbol, speed_i, stamp_ms=t_ms)

    async def drive(self, steering: Steering, t_ms: int | None = None) -> DispatchOutcome:
        state = self.control_state(steering)
        return await self.dispatch(state.direction, state.speed, t_ms=t_ms)

    def control_state(self, steering: Steering) -> ControlState:
        return derive_control_state(steering, self.control.max_speed(), self.throttle.dead_zone_speed)

    # ---------------------- power / safety ----------------------

    async def power(self, on: bool) -> DispatchOutcome:
        # power transitions always go out: no gate, no throttle
        return await self._send(POWER_ON if on else POWER_OFF, 0, stamp_ms=None)

    async def emergency_stop(self) -> DispatchOutcome:
        symbol = "emergency_stop"
        if not self.channel.is_connected():
            return DispatchOutcome(DispatchStatus.FAILED, symbol, 0, error="not connected")
        start = self._clock()
        try:
            reply = await self.channel.emergency_stop()
        except ChannelError as e:
            return DispatchOutcome(DispatchStatus.FAILED, symbol, 0,
                                   elapsed_ms=self._elapsed_ms(start), code=e.code, error=str(e))
        status = DispatchStatus.SENT if reply.ok else DispatchStatus.FAILED
        return DispatchOutcome(status, symbol, 0, elapsed_ms=self._elapsed_ms(start), code=reply.code)

    # ---------------------- rotation buttons ----------------------

    async def rotate(self, kind: RotationKind, t_ms: int | None = None) -> DispatchOutcome:
        """Timed turn at fixed speed; an automatic STOP follows after the turn duration."""
        if t_ms is None:
            t_ms = self._now_ms()
        out = await self.dispatch(ROTATION_DIRECTIONS[kind], self.rotation.speed, t_ms=t_ms)
        if out.status != DispatchStatus.GATED:
            hold = self.rotation.u_turn_ms if kind == RotationKind.U_TURN else self.rotation.quarter_turn_ms
            self._pending_stops.append(_PendingStop(due_ms=t_ms + hold, kind=kind))
        return out

    async def tick(self, t_ms: int | None = None) -> List[DispatchOutcome]:
        """Fire automatic stops that are due."""
        if not self._pending_stops:
            return []
        if t_ms is None:
            t_ms = self._now_ms()
        due = [p for p in self._pending_stops if p.due_ms <= t_ms]
        if not due:
            return []
        self._pending_stops = [p for p in self._pending_stops if p.due_ms > t_ms]

        out: List[DispatchOutcome] = []
        for _ in due:
            symbol = DIRECTION_SYMBOLS[Direction.STOP]
            if not self.control.is_powered():
                out.append(DispatchOutcome(DispatchStatus.GATED, symbol, 0))
                continue
            # a dropped stop would leave the chassis turning, so skip the throttle
            out.append(await self._send(symbol, 0, stamp_ms=t_ms))
        return out

    @property
    def pending_stops(self) -> int:
        return len(self._pending_stops)

    def cancel_pending(self) -> None:
        self._pending_stops.clear()

    # ---------------------- helpers ----------------------

    async def _send(self, symbol: str, speed: int, stamp_ms: int | None) -> DispatchOutcome:
        if not self.channel.is_connected():
            return DispatchOutcome(DispatchStatus.FAILED, symbol, speed, elapsed_ms=0.0, error="not connected")

        start = self._clock()
        try:
            reply = await self.channel.send(symbol, speed)
        except ChannelError as e:
            return DispatchOutcome(DispatchStatus.FAILED, symbol, speed,
                                   elapsed_ms=self._elapsed_ms(start), code=e.code, error=str(e))

        elapsed = self._elapsed_ms(start)
        if not reply.ok:
            return DispatchOutcome(DispatchStatus.FAILED, symbol, speed, elapsed_ms=elapsed,
                                   code=reply.code, error=reply.message)
        # only a delivered command opens the throttle window
        if stamp_ms is not None:
            self._last_send_ms = stamp_ms
        return DispatchOutcome(DispatchStatus.SENT, symbol, speed, elapsed_ms=elapsed, code=reply.code)

    def _elapsed_ms(self, start: float) -> float:
        return (self._clock() - start) * 1000.0

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
