from __future__ import annotations

import threading
import time

import pystray

from stickdrive.core.config import DAMPING_STEPS, SPEED_PRESETS
from stickdrive.core.control import ControlPlane, RotationKind
from stickdrive.core.types import SignalReading
from stickdrive.ui.icons import make_icon, signal_label


class SignalBox:
    """Latest health reading, written by the control loop, read by the tray thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reading = SignalReading(level=0, latency_ms=None, t_ms=0)

    def put(self, reading: SignalReading) -> None:
        with self._lock:
            self._reading = reading

    def get(self) -> SignalReading:
        with self._lock:
            return self._reading


def run_tray(state: ControlPlane, signal: SignalBox, stop_flag: threading.Event) -> None:
    icon = pystray.Icon("StickDrive")

    def update_icon():
        r = signal.get()
        powered = state.is_powered()
        icon.icon = make_icon(powered, r.level)
        icon.title = (
            f"StickDrive ({'ON' if powered else 'OFF'}) "
            f"max {state.max_speed()} | {signal_label(r.level, r.latency_ms)}"
        )

    def on_toggle(_icon, _item):
        state.toggle()
        update_icon()

    def rotate(kind):
        def _cb(_icon, _item):
            state.request_rotation(kind)
        return _cb

    def set_speed(speed):
        def _cb(_icon, _item):
            state.set_max_speed(speed)
            update_icon()
        return _cb

    def set_damping(value):
        def _cb(_icon, _item):
            state.set_damping(value)
        return _cb

    def on_estop(_icon, _item):
        state.request_emergency_stop()
        state.set_powered(False)
        update_icon()

    def on_quit(_icon, _item):
        stop_flag.set()
        icon.stop()

    powered_only = lambda _item: state.is_powered()

    icon.menu = pystray.Menu(
        pystray.MenuItem("Power", on_toggle, checked=lambda _item: state.is_powered()),
        pystray.MenuItem("Emergency stop", on_estop),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Turn left 90", rotate(RotationKind.LEFT), enabled=powered_only),
        pystray.MenuItem("Turn right 90", rotate(RotationKind.RIGHT), enabled=powered_only),
        pystray.MenuItem("U-turn", rotate(RotationKind.U_TURN), enabled=powered_only),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Max speed", pystray.Menu(*[
            pystray.MenuItem(f"{s}", set_speed(s), radio=True,
                             checked=lambda _item, s=s: state.max_speed() == s)
            for s in SPEED_PRESETS
        ])),
        pystray.MenuItem("Damping", pystray.Menu(*[
            pystray.MenuItem(f"{v:.1f}x", set_damping(v), radio=True,
                             checked=lambda _item, v=v: abs(state.damping().coefficient - v) < 1e-6)
            for v in DAMPING_STEPS
        ])),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Quit", on_quit),
    )

    update_icon()

    # background updater keeps the icon fresh when hotkeys or the sampler change things
    def watcher():
        last = None
        while not stop_flag.is_set():
            r = signal.get()
            cur = (state.is_powered(), r.level, r.latency_ms, state.max_speed())
            if cur != last:
                update_icon()
                last = cur
            time.sleep(0.2)

    threading.Thread(target=watcher, daemon=True).start()
    try:
        icon.run()
    except Exception as e:
        # Tray backends can be fragile; do not kill the app.
        print(f"[StickDrive] Tray backend crashed: {e}")
