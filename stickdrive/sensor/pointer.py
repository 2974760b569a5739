from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from pynput import mouse

from stickdrive.runtime.run_loop import PointerEvent


@dataclass
class MousePointerSrc:
    """
    Global left-button drags as stick input.

    pynput delivers callbacks on its own listener thread; each one is turned
    into a PointerEvent and handed to `sink` (ControlLoop.post_pointer, which
    is thread-safe). Hit-testing against the pad surface happens in the loop.
    """
    sink: Callable[[PointerEvent], None]
    button: mouse.Button = mouse.Button.left

    _dragging: bool = False
    _listener: mouse.Listener | None = field(default=None, repr=False)

    def start(self) -> None:
        if self._listener is not None:
            return
        self._listener = mouse.Listener(on_move=self._on_move, on_click=self._on_click)
        self._listener.start()

    def close(self) -> None:
        if self._listener is None:
            return
        self._listener.stop()
        self._listener = None

    def _on_click(self, x, y, button, pressed) -> None:
        if button != self.button:
            return
        t_ms = int(time.monotonic() * 1000)
        if pressed:
            self._dragging = True
            self.sink(PointerEvent("press", float(x), float(y), t_ms))
        elif self._dragging:
            self._dragging = False
            self.sink(PointerEvent("release", float(x), float(y), t_ms))

    def _on_move(self, x, y) -> None:
        if not self._dragging:
            return
        self.sink(PointerEvent("move", float(x), float(y), int(time.monotonic() * 1000)))
