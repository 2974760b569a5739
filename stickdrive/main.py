from __future__ import annotations

import asyncio

from stickdrive.core.config import DEFAULT_PRESET
from stickdrive.core.control import ControlPlane
from stickdrive.core.types import DispatchStatus
from stickdrive.dispatch.dispatcher import CommandDispatcher
from stickdrive.interpreter.state_machine import PadInput
from stickdrive.link.loopback import LoopbackChannel


async def demo():
	control = ControlPlane(_powered=True, _max_speed=DEFAULT_PRESET.max_speed, _damping=DEFAULT_PRESET.damping)
	channel = LoopbackChannel()
	await channel.connect()
	pad = PadInput(DEFAULT_PRESET.pad, damping=control.damping)
	disp = CommandDispatcher(channel, control)

	async def push(steerings, t):
		for s in steerings:
			out = await disp.drive(s, t_ms=t)
			mark = "->" if out.status == DispatchStatus.SENT else "  "
			print(f"{t:5d}ms {mark} {s.direction.value:<10} {s.intensity:6.1f}  {out.status.value:<7} {out.symbol}/{out.speed}")

	print("StickDrive scripted drag (loopback channel).")
	t = 0
	await push(pad.press(0, 0, t), t)

	# push up and to the right, past the edge
	for i in range(1, 16):
		t += 16
		await push(pad.move(i * 5, -i * 7, t), t)

	t += 16
	pad.release(t)
	while pad.animating:
		t += 16
		await push(pad.tick(t), t)

	print(f"done: {len(channel.sent)} commands reached the channel")


def main():
	asyncio.run(demo())


if __name__ == "__main__":
	main()
