"""
StickDrive — CORE CONTRACTS

Value types shared by the interpreter, the dispatcher and the link layer.
Everything here is immutable; state lives in the objects that own it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# ============================================================
# Pad → Interpreter (pointer / animation → geometry)
# ============================================================

@dataclass(frozen=True)
class Displacement:
    """Offset of the drag point from the pad's rest center, in pixels."""
    x: float
    y: float

    @property
    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def scaled(self, k: float) -> "Displacement":
        return Displacement(self.x * k, self.y * k)

    def clamped(self, radius: float) -> "Displacement":
        dist = self.magnitude
        if dist <= radius:
            return self
        return self.scaled(radius / dist)


REST = Displacement(0.0, 0.0)


class Direction(str, Enum):
    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"
    TURN_LEFT = "TURN_LEFT"
    TURN_RIGHT = "TURN_RIGHT"
    STOP = "STOP"


class DragPhase(str, Enum):
    IDLE = "IDLE"
    DRAGGING = "DRAGGING"
    RETURNING = "RETURNING"


@dataclass(frozen=True)
class Steering:
    """Geometry mapper output. intensity is in [0, 100]."""
    direction: Direction
    intensity: float


STOPPED = Steering(Direction.STOP, 0.0)


@dataclass(frozen=True)
class ControlState:
    direction: Direction
    intensity: float
    speed: int


@dataclass(frozen=True)
class DampingProfile:
    """
    Return-to-center tuning.

    Lower coefficient = longer, softer return.
    Higher coefficient = snappier return with a sharper ease-out.
    """
    coefficient: float = 0.5

    MIN = 0.2
    MAX = 1.0

    def __post_init__(self) -> None:
        if not (self.MIN <= self.coefficient <= self.MAX):
            raise ValueError(f"damping coefficient {self.coefficient} outside [{self.MIN}, {self.MAX}]")


# ============================================================
# Dispatcher → Link (commands → wire)
# ============================================================

class DispatchStatus(str, Enum):
    SENT = "SENT"
    SKIPPED = "SKIPPED"   # throttled on purpose, not an error
    GATED = "GATED"       # powered off, nothing attempted
    FAILED = "FAILED"


@dataclass(frozen=True)
class DispatchOutcome:
    status: DispatchStatus
    symbol: str
    speed: int
    elapsed_ms: float = 0.0
    code: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == DispatchStatus.SENT


@dataclass(frozen=True)
class ChannelReply:
    ok: bool
    code: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class ChassisStatus:
    direction: str
    speed: float
    is_running: bool

    @classmethod
    def from_payload(cls, data: dict) -> "ChassisStatus":
        return cls(
            direction=str(data.get("direction", "")),
            speed=float(data.get("speed", 0) or 0),
            is_running=bool(data.get("is_running", False)),
        )


@dataclass(frozen=True)
class ChassisResponse:
    code: str
    message: str = ""
    status: Optional[ChassisStatus] = None

    @classmethod
    def from_payload(cls, data: dict) -> "ChassisResponse":
        status = data.get("status")
        return cls(
            code=str(data.get("code", "")),
            message=str(data.get("message", "")),
            status=ChassisStatus.from_payload(status) if isinstance(status, dict) else None,
        )


# ============================================================
# Health
# ============================================================

@dataclass(frozen=True)
class SignalReading:
    """0 = offline, 1..4 = bars. latency_ms is None when no round-trip completed."""
    level: int
    latency_ms: Optional[float]
    t_ms: int


def clamp(x: float, lo: float, hi: float) -> float:
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x
