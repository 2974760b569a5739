"""
StickDrive — v1 Defaults (Presets)

Tuning values for the pad, the return animation, the dispatcher and the
health probe. The operator profile (runtime/profile.py) only overrides the
handful of values the operator can change at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class PresetName(str, Enum):
    DEFAULT = "Default"
    SNAPPY = "Snappy"
    GENTLE = "Gentle"


@dataclass(frozen=True)
class PadGeometry:
    radius: float = 100.0          # max stored displacement (R)
    min_move: float = 10.0         # below this the stick reads STOP
    surface_radius: float = 128.0  # press hit-test radius around the center


@dataclass(frozen=True)
class DampingBounds:
    base_ms: float = 500.0         # duration at coefficient 1.0 before clamping
    min_ms: float = 200.0
    max_ms: float = 1000.0


@dataclass(frozen=True)
class ThrottleTuning:
    min_interval_ms: int = 50
    dead_zone_speed: int = 10      # derived speeds below this are sent as 0


@dataclass(frozen=True)
class RotationTuning:
    speed: int = 20
    quarter_turn_ms: int = 3000
    u_turn_ms: int = 6000


@dataclass(frozen=True)
class HealthTuning:
    period_ms: int = 5000
    timeout_s: float = 5.0
    # (latency upper bound ms, level); anything slower is level 1
    buckets: Tuple[Tuple[float, int], ...] = ((100.0, 4), (300.0, 3), (600.0, 2))


@dataclass(frozen=True)
class LogTuning:
    max_entries: int = 10
    drive_interval_ms: int = 500


@dataclass(frozen=True)
class ChannelSettings:
    http_base_url: str = "http://127.0.0.1:8080/api"
    socket_url: str = "http://192.168.8.179:8081"
    request_timeout_s: float = 2.0


@dataclass(frozen=True)
class Preset:
    name: PresetName
    damping: float
    max_speed: int
    pad: PadGeometry = PadGeometry()
    damping_bounds: DampingBounds = DampingBounds()
    throttle: ThrottleTuning = ThrottleTuning()
    rotation: RotationTuning = RotationTuning()
    health: HealthTuning = HealthTuning()
    log: LogTuning = LogTuning()
    channel: ChannelSettings = ChannelSettings()


SPEED_PRESETS = (30, 50, 70, 100)
DAMPING_STEPS = (0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0)

DEFAULT_PRESET = Preset(
    name=PresetName.DEFAULT,
    damping=0.5,
    max_speed=50,
)

SNAPPY_PRESET = Preset(
    name=PresetName.SNAPPY,
    damping=1.0,
    max_speed=70,
)

GENTLE_PRESET = Preset(
    name=PresetName.GENTLE,
    damping=0.2,
    max_speed=30,
)

PRESETS = {
    PresetName.DEFAULT: DEFAULT_PRESET,
    PresetName.SNAPPY: SNAPPY_PRESET,
    PresetName.GENTLE: GENTLE_PRESET,
}
