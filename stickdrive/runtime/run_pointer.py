from __future__ import annotations

import asyncio
import threading

from stickdrive.core.config import DEFAULT_PRESET
from stickdrive.core.control import ControlPlane
from stickdrive.runtime.command_log import CommandLog
from stickdrive.runtime.profile import resolve_profile, save_profile
from stickdrive.runtime.run_loop import ControlLoop, make_channel
from stickdrive.sensor.pointer import MousePointerSrc
from stickdrive.ui.hotkeys import run_hotkeys
from stickdrive.ui.icons import signal_label
try:
    from stickdrive.ui.tray import SignalBox, run_tray
except Exception:
    SignalBox = None
    run_tray = None


async def _serve(loop: ControlLoop, stop_flag: threading.Event) -> None:
    stop = asyncio.Event()

    async def bridge():
        # tray "Quit" lives on another thread
        while not stop.is_set():
            if stop_flag.is_set():
                stop.set()
            await asyncio.sleep(0.1)

    waiter = asyncio.create_task(bridge())
    try:
        await loop.run(stop)
    finally:
        stop.set()
        await waiter


def main():
    preset = DEFAULT_PRESET
    prof = resolve_profile(preset)

    state = ControlPlane(_powered=False)
    state.set_max_speed(prof.max_speed)
    state.set_damping(prof.damping)

    channel = make_channel(prof, preset)
    stop_flag = threading.Event()

    box = SignalBox() if SignalBox is not None else None

    def on_signal(r):
        if box is not None:
            box.put(r)
        print(f"[Health] signal {r.level}/4 ({signal_label(r.level, r.latency_ms)})")

    loop = ControlLoop(
        channel,
        state,
        preset=preset,
        center=(prof.pad_center_x, prof.pad_center_y),
        log=CommandLog.from_env(preset.log),
        on_signal=on_signal,
    )
    pointer = MousePointerSrc(sink=loop.post_pointer)

    print(f"[StickDrive] Pointer runtime via {prof.transport}. Ctrl+C to quit.")
    print(f"  Pad center: ({prof.pad_center_x:.0f}, {prof.pad_center_y:.0f}), "
          f"radius {preset.pad.surface_radius:.0f}px. Drag with the left button.")
    print("  Hotkeys:")
    print("   - Ctrl+Alt+Space        = Toggle power")
    print("   - Ctrl+Alt+Esc          = EMERGENCY STOP")
    print("   - Ctrl+Alt+Left/Right   = Turn 90")
    print("   - Ctrl+Alt+Down         = U-turn")
    print("   - Ctrl+Alt+1..4         = Max speed 30/50/70/100")

    threading.Thread(target=run_hotkeys, args=(state, stop_flag), daemon=True).start()

    if run_tray is None:
        print("  Tray: unavailable (missing backend). Hotkeys only.")
    else:
        try:
            threading.Thread(target=run_tray, args=(state, box, stop_flag), daemon=True).start()
        except Exception as e:
            print(f"[StickDrive] Tray failed: {e}. Hotkeys only.")

    pointer.start()
    try:
        asyncio.run(_serve(loop, stop_flag))
    except KeyboardInterrupt:
        print("\n[StickDrive] exiting")
    finally:
        stop_flag.set()
        pointer.close()
        prof.max_speed = state.max_speed()
        prof.damping = state.damping().coefficient
        save_profile(prof)


if __name__ == "__main__":
    main()
