from __future__ import annotations

import threading

from pynput import keyboard

from stickdrive.core.config import SPEED_PRESETS
from stickdrive.core.control import ControlPlane, RotationKind


def run_hotkeys(state: ControlPlane, stop_flag: threading.Event | None = None) -> None:
    """
    Global hotkeys (X11):
    - Ctrl+Alt+Space: Toggle power
    - Ctrl+Alt+Esc:   Emergency stop + power OFF
    - Ctrl+Alt+Left / Right / Down: turn left 90 / turn right 90 / u-turn
    - Ctrl+Alt+1..4:  max speed presets
    """

    pressed = set()

    CTRL_KEYS = {keyboard.Key.ctrl, keyboard.Key.ctrl_l, keyboard.Key.ctrl_r}
    ALT_KEYS  = {keyboard.Key.alt, keyboard.Key.alt_l, keyboard.Key.alt_r}
    ROTATIONS = {
        keyboard.Key.left: RotationKind.LEFT,
        keyboard.Key.right: RotationKind.RIGHT,
        keyboard.Key.down: RotationKind.U_TURN,
    }

    def is_ctrl():
        return any(k in pressed for k in CTRL_KEYS)

    def is_alt():
        return any(k in pressed for k in ALT_KEYS)

    def on_press(k):
        pressed.add(k)

        if not (is_ctrl() and is_alt()):
            return
        if k == keyboard.Key.space:
            powered = state.toggle()
            print(f"[StickDrive] power {'ON' if powered else 'OFF'} (Ctrl+Alt+Space)")
        elif k == keyboard.Key.esc:
            state.request_emergency_stop()
            state.set_powered(False)
            print("[StickDrive] EMERGENCY STOP (Ctrl+Alt+Esc)")
        elif k in ROTATIONS:
            if state.is_powered():
                state.request_rotation(ROTATIONS[k])
        else:
            ch = getattr(k, "char", None)
            if ch and ch in "1234":
                speed = state.set_max_speed(SPEED_PRESETS[int(ch) - 1])
                print(f"[StickDrive] max speed {speed}")

    def on_release(k):
        pressed.discard(k)

    with keyboard.Listener(on_press=on_press, on_release=on_release) as listener:
        if stop_flag is None:
            listener.join()
        else:
            while listener.running and not stop_flag.wait(0.2):
                pass
