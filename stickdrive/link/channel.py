"""
Command Channel contract.

Bindings own their connection lifecycle; the dispatcher and the health
sampler only read connectivity and request sends. Every transport problem a
binding sees is raised as ChannelError so callers handle exactly one type.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from stickdrive.core.events import Signal
from stickdrive.core.types import ChannelReply

POWER_ON = "start"
POWER_OFF = "stop"


class ChannelError(Exception):
    """Transport-level failure (unreachable, rejected, timed out)."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


@runtime_checkable
class CommandChannel(Protocol):
    fallback_symbol: str
    connection: Signal[bool]

    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def send(self, symbol: str, speed: int) -> ChannelReply: ...

    async def ping(self) -> None: ...

    async def emergency_stop(self) -> ChannelReply: ...
