from __future__ import annotations

from typing import Callable, Tuple

from stickdrive.core.config import DampingBounds, PadGeometry
from stickdrive.core.events import Signal
from stickdrive.core.types import (
    DampingProfile, Displacement, DragPhase, REST, STOPPED, Steering,
)
from stickdrive.interpreter.damping import ReturnAnimator
from stickdrive.interpreter.geometry import map_displacement


class PadInput:
    """
    Deterministic virtual-stick interpreter.

    IDLE --press--> DRAGGING --release--> RETURNING --animation done--> IDLE
    A press while RETURNING cancels the animation and drags again.

    Every displacement update is published on `changes` and also returned,
    so callers driving it from a replay can inspect the emissions directly.
    """

    def __init__(
        self,
        geometry: PadGeometry = PadGeometry(),
        damping: Callable[[], DampingProfile] | DampingProfile = DampingProfile(),
        center: Tuple[float, float] = (0.0, 0.0),
        bounds: DampingBounds = DampingBounds(),
    ) -> None:
        self.geometry = geometry
        self.bounds = bounds
        self.center = center
        # damping is read at release time; the operator may change it mid-drive
        self._damping = damping if callable(damping) else (lambda: damping)

        self.phase: DragPhase = DragPhase.IDLE
        self.displacement: Displacement = REST
        self.changes: Signal[Steering] = Signal("pad.changes")

        self._animator: ReturnAnimator | None = None
        self._closed = False

    # ---------------------- pointer input ----------------------

    def hit(self, x: float, y: float) -> bool:
        """True if (x, y) lies on the control surface."""
        cx, cy = self.center
        return Displacement(x - cx, y - cy).magnitude <= self.geometry.surface_radius

    def press(self, x: float, y: float, t_ms: int) -> list[Steering]:
        if self._closed:
            return []
        if self.phase == DragPhase.RETURNING:
            self._cancel_animation()
        self.phase = DragPhase.DRAGGING
        return self._set_from_pointer(x, y)

    def move(self, x: float, y: float, t_ms: int) -> list[Steering]:
        if self._closed or self.phase != DragPhase.DRAGGING:
            return []
        return self._set_from_pointer(x, y)

    def release(self, t_ms: int) -> list[Steering]:
        if self._closed or self.phase != DragPhase.DRAGGING:
            return []
        self.phase = DragPhase.RETURNING
        self._animator = ReturnAnimator(
            start=self.displacement,
            coefficient=self._damping().coefficient,
            start_ms=t_ms,
            bounds=self.bounds,
        )
        return []

    # ---------------------- animation ----------------------

    def tick(self, t_ms: int) -> list[Steering]:
        """Advance the return animation. No-op outside RETURNING."""
        if self._closed or self.phase != DragPhase.RETURNING or self._animator is None:
            return []

        frame = self._animator.sample(t_ms)
        if frame is None:
            return []

        if frame.done:
            self._animator = None
            self.phase = DragPhase.IDLE
            self.displacement = REST
            return self._emit(STOPPED)

        self.displacement = frame.displacement
        return self._emit(map_displacement(self.displacement, self.geometry))

    @property
    def animating(self) -> bool:
        return self._animator is not None

    # ---------------------- lifecycle ----------------------

    def reset(self) -> None:
        """Drop to IDLE at rest without emitting (used on power-off)."""
        self._cancel_animation()
        self.phase = DragPhase.IDLE
        self.displacement = REST

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cancel_animation()
        self.phase = DragPhase.IDLE
        self.displacement = REST
        self.changes.clear()

    # ---------------------- helpers ----------------------

    def _cancel_animation(self) -> None:
        if self._animator is not None:
            self._animator.cancel()
            self._animator = None

    def _set_from_pointer(self, x: float, y: float) -> list[Steering]:
        cx, cy = self.center
        self.displacement = Displacement(x - cx, y - cy).clamped(self.geometry.radius)
        return self._emit(map_displacement(self.displacement, self.geometry))

    def _emit(self, steering: Steering) -> list[Steering]:
        self.changes.publish(steering)
        return [steering]
