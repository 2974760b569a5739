from __future__ import annotations

import math

from stickdrive.core.config import PadGeometry
from stickdrive.core.types import Direction, Displacement, Steering


def clamp_to_radius(d: Displacement, radius: float) -> Displacement:
    return d.clamped(radius)


def normalize_angle(angle_deg: float) -> float:
    """Fold any angle into [-180, 180)."""
    return ((angle_deg + 180.0) % 360.0) - 180.0


def sector_for_angle(angle_deg: float) -> Direction:
    a = normalize_angle(angle_deg)
    if -45.0 <= a < 45.0:
        return Direction.TURN_RIGHT
    if 45.0 <= a < 135.0:
        return Direction.FORWARD
    if -135.0 <= a < -45.0:
        return Direction.BACKWARD
    # [135, 180) and [-180, -135)
    return Direction.TURN_LEFT


def map_displacement(d: Displacement, geometry: PadGeometry = PadGeometry()) -> Steering:
    """
    Displacement -> (direction, intensity).
    Screen y grows downward, so it is inverted before taking the angle.
    """
    dist = d.magnitude
    intensity = min(100.0, 100.0 * dist / geometry.radius)

    if dist < geometry.min_move:
        return Steering(Direction.STOP, intensity)

    angle = math.degrees(math.atan2(-d.y, d.x))
    return Steering(sector_for_angle(angle), intensity)
