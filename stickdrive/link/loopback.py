from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Tuple

from stickdrive.core.events import Signal
from stickdrive.core.types import ChannelReply
from stickdrive.link.channel import ChannelError


@dataclass
class LoopbackChannel:
    """
    In-process channel for dry runs: records every command instead of
    touching the network. latency_s simulates the round-trip.
    """
    latency_s: float = 0.0
    fallback_symbol: str = "pause"
    fail_sends: bool = False

    sent: List[Tuple[str, int]] = field(default_factory=list)
    pings: int = 0
    connection: Signal = field(default_factory=lambda: Signal("loopback.connection"))
    _connected: bool = False

    def is_connected(self) -> bool:
        return self._connected

    def set_connected(self, value: bool) -> None:
        if value == self._connected:
            return
        self._connected = value
        self.connection.publish(value)

    async def connect(self) -> None:
        self.set_connected(True)

    async def close(self) -> None:
        self.set_connected(False)

    async def send(self, symbol: str, speed: int) -> ChannelReply:
        if self.latency_s:
            await asyncio.sleep(self.latency_s)
        if self.fail_sends:
            raise ChannelError("loopback send failure")
        self.sent.append((symbol, int(speed)))
        return ChannelReply(ok=True, code="ok")

    async def ping(self) -> None:
        if self.latency_s:
            await asyncio.sleep(self.latency_s)
        if self.fail_sends:
            raise ChannelError("loopback ping failure")
        self.pings += 1

    async def emergency_stop(self) -> ChannelReply:
        return await self.send("emergency_stop", 0)
