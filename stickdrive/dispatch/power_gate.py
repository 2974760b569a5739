from __future__ import annotations

from dataclasses import dataclass

from stickdrive.core.control import ControlPlane
from stickdrive.core.types import DispatchOutcome
from stickdrive.dispatch.dispatcher import CommandDispatcher
from stickdrive.interpreter.state_machine import PadInput


@dataclass
class PowerGate:
    """
    Central power switch.
    When the control plane flips, we:
      - send start/stop (never throttled)
      - on OFF: drop the stick to rest and forget pending automatic stops
    """
    control: ControlPlane
    dispatcher: CommandDispatcher
    pad: PadInput

    _last_powered: bool = False

    async def guard(self) -> DispatchOutcome | None:
        powered = self.control.is_powered()
        if powered == self._last_powered:
            return None

        self._last_powered = powered
        print(f"[Power] chassis {'ON' if powered else 'OFF'}")

        if not powered:
            # hard stop: no more drive commands will pass the dispatcher gate
            self.pad.reset()
            self.dispatcher.cancel_pending()

        return await self.dispatcher.power(powered)

    async def shutdown(self) -> DispatchOutcome | None:
        """Power off on exit if we are still on."""
        self.control.set_powered(False)
        return await self.guard()
