from __future__ import annotations

from dataclasses import dataclass

from stickdrive.core.config import DampingBounds
from stickdrive.core.types import Displacement, REST, clamp


def duration_ms(coefficient: float, bounds: DampingBounds = DampingBounds()) -> float:
    return clamp(bounds.base_ms / coefficient, bounds.min_ms, bounds.max_ms)


def eased(t: float, coefficient: float) -> float:
    # ease-out; exponent grows with the coefficient -> sharper deceleration
    return 1.0 - (1.0 - t) ** (2.0 + coefficient)


@dataclass(frozen=True)
class AnimationFrame:
    displacement: Displacement
    progress: float
    done: bool


class ReturnAnimator:
    """
    Decelerating return from the release point to rest.

    Each sample is a pure function of (t_ms - start_ms), so replaying the same
    timestamps yields the same frames. Driven by whoever owns the clock.
    """

    def __init__(
        self,
        start: Displacement,
        coefficient: float,
        start_ms: int,
        bounds: DampingBounds = DampingBounds(),
    ) -> None:
        self.start = start
        self.coefficient = float(coefficient)
        self.start_ms = start_ms
        self.duration_ms = duration_ms(self.coefficient, bounds)
        self.cancelled = False
        self.finished = False

    def progress(self, t_ms: int) -> float:
        elapsed = max(0, t_ms - self.start_ms)
        return min(elapsed / self.duration_ms, 1.0)

    def sample(self, t_ms: int) -> AnimationFrame | None:
        if self.cancelled or self.finished:
            return None

        p = self.progress(t_ms)
        if p >= 1.0:
            self.finished = True
            return AnimationFrame(displacement=REST, progress=1.0, done=True)

        k = 1.0 - eased(p, self.coefficient)
        return AnimationFrame(displacement=self.start.scaled(k), progress=p, done=False)

    def cancel(self) -> None:
        self.cancelled = True
