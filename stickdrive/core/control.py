from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Deque, List

from stickdrive.core.types import ControlState, DampingProfile, Direction, Steering, clamp


class RotationKind(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    U_TURN = "U_TURN"


@dataclass
class ControlPlane:
    """
    Shared operator settings.
    powered=False means the chassis is logically OFF (dispatcher sends nothing).
    Written from hotkey / tray threads, read by the control loop.
    """
    _powered: bool = False
    _max_speed: int = 50
    _damping: float = 0.5
    _lock: Lock = field(default_factory=Lock)
    _rotations: Deque[RotationKind] = field(default_factory=deque)
    _estop: bool = False

    def is_powered(self) -> bool:
        with self._lock:
            return self._powered

    def set_powered(self, value: bool) -> None:
        with self._lock:
            self._powered = value

    def toggle(self) -> bool:
        with self._lock:
            self._powered = not self._powered
            return self._powered

    def max_speed(self) -> int:
        with self._lock:
            return self._max_speed

    def set_max_speed(self, value: float) -> int:
        with self._lock:
            self._max_speed = int(clamp(round(value), 0, 100))
            return self._max_speed

    def damping(self) -> DampingProfile:
        with self._lock:
            return DampingProfile(self._damping)

    def set_damping(self, value: float) -> float:
        with self._lock:
            # slider granularity is 0.1
            self._damping = round(clamp(value, DampingProfile.MIN, DampingProfile.MAX), 1)
            return self._damping

    # ---------------------- queued operator actions ----------------------

    def request_rotation(self, kind: RotationKind) -> None:
        with self._lock:
            self._rotations.append(kind)

    def request_emergency_stop(self) -> None:
        with self._lock:
            self._estop = True

    def drain_rotations(self) -> List[RotationKind]:
        with self._lock:
            out = list(self._rotations)
            self._rotations.clear()
            return out

    def take_emergency_stop(self) -> bool:
        with self._lock:
            hit, self._estop = self._estop, False
            return hit


def derive_speed(intensity: float, max_speed: int, dead_zone: int = 10) -> int:
    speed = int(math.floor((intensity / 100.0) * max_speed))
    if speed < dead_zone:
        return 0
    return speed


def derive_control_state(steering: Steering, max_speed: int, dead_zone: int = 10) -> ControlState:
    if steering.direction == Direction.STOP:
        return ControlState(direction=Direction.STOP, intensity=0.0, speed=0)
    speed = derive_speed(steering.intensity, max_speed, dead_zone)
    return ControlState(direction=steering.direction, intensity=steering.intensity, speed=speed)
