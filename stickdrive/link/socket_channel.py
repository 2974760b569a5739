from __future__ import annotations

import asyncio
from typing import Any, List

import socketio
from socketio import exceptions as sio_exceptions

from stickdrive.core.config import ChannelSettings
from stickdrive.core.events import Signal
from stickdrive.core.types import ChannelReply, ChassisResponse, ChassisStatus
from stickdrive.link.channel import ChannelError


class SocketChannel:
    """
    Persistent Socket.IO binding.

    Commands go out as `chassis_control` events. Acknowledgements arrive later
    as `chassis_response`, so send() returns an optimistic reply right away and
    the real responses are republished on `responses`.
    """

    fallback_symbol = "pause"

    def __init__(
        self,
        url: str | None = None,
        settings: ChannelSettings = ChannelSettings(),
        ping_timeout_s: float = 5.0,
        client: Any = None,
    ) -> None:
        self.url = url or settings.socket_url
        self.ping_timeout_s = ping_timeout_s
        self.connection: Signal[bool] = Signal("socket.connection")
        self.status: Signal[ChassisStatus] = Signal("socket.status")
        self.responses: Signal[ChassisResponse] = Signal("socket.responses")

        self._sio = client if client is not None else socketio.AsyncClient(reconnection=True)
        self._connected = False
        self._pending_pongs: List[asyncio.Future] = []
        self._register_handlers()

    # ---------------------- lifecycle ----------------------

    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        if self._connected:
            return
        print(f"[Link] connecting to {self.url} ...")
        try:
            await self._sio.connect(self.url)
        except sio_exceptions.ConnectionError as e:
            self._set_connected(False)
            raise ChannelError(f"connect failed: {e}") from e

    async def close(self) -> None:
        if not self._connected:
            return
        await self._sio.disconnect()
        print("[Link] disconnected by operator")
        self._set_connected(False)

    # ---------------------- outbound ----------------------

    async def send(self, symbol: str, speed: int) -> ChannelReply:
        await self._emit("chassis_control", {"direction": symbol, "speed": int(speed)})
        return ChannelReply(ok=True)

    async def emergency_stop(self) -> ChannelReply:
        await self._emit("emergency_stop")
        return ChannelReply(ok=True)

    async def request_status(self) -> None:
        await self._emit("get_status")

    async def ping(self) -> None:
        loop = asyncio.get_running_loop()
        fut = loop.create_future()
        self._pending_pongs.append(fut)
        try:
            await self._emit("ping")
            await asyncio.wait_for(fut, timeout=self.ping_timeout_s)
        except asyncio.TimeoutError as e:
            raise ChannelError("ping timed out") from e
        finally:
            if fut in self._pending_pongs:
                self._pending_pongs.remove(fut)

    async def _emit(self, event: str, data: Any = None) -> None:
        if not self._connected:
            raise ChannelError("socket channel not connected")
        try:
            if data is None:
                await self._sio.emit(event)
            else:
                await self._sio.emit(event, data)
        except sio_exceptions.SocketIOError as e:
            raise ChannelError(f"emit {event} failed: {e}") from e

    # ---------------------- inbound ----------------------

    def _register_handlers(self) -> None:
        self._sio.on("connect", self._on_connect)
        self._sio.on("disconnect", self._on_disconnect)
        self._sio.on("connect_error", self._on_connect_error)
        self._sio.on("connected", self._on_server_hello)
        self._sio.on("chassis_response", self._on_response)
        self._sio.on("emergency_stop_response", self._on_response)
        self._sio.on("status_update", self._on_status)
        self._sio.on("status_response", self._on_status_response)
        self._sio.on("pong", self._on_pong)

    def _set_connected(self, value: bool) -> None:
        if value == self._connected:
            return
        self._connected = value
        if not value:
            for fut in self._pending_pongs:
                if not fut.done():
                    fut.set_exception(ChannelError("disconnected while waiting for pong"))
        self.connection.publish(value)

    def _on_connect(self) -> None:
        print("[Link] connected")
        self._set_connected(True)

    def _on_disconnect(self, *args) -> None:
        print("[Link] connection lost")
        self._set_connected(False)

    def _on_connect_error(self, data=None) -> None:
        print(f"[Link] connect error: {data}")
        self._set_connected(False)

    def _on_server_hello(self, data) -> None:
        if isinstance(data, dict) and isinstance(data.get("status"), dict):
            self.status.publish(ChassisStatus.from_payload(data["status"]))

    def _on_response(self, data) -> None:
        if not isinstance(data, dict):
            return
        resp = ChassisResponse.from_payload(data)
        self.responses.publish(resp)
        if resp.status is not None:
            self.status.publish(resp.status)

    def _on_status(self, data) -> None:
        if isinstance(data, dict):
            self.status.publish(ChassisStatus.from_payload(data))

    def _on_status_response(self, data) -> None:
        if isinstance(data, dict) and isinstance(data.get("status"), dict):
            self.status.publish(ChassisStatus.from_payload(data["status"]))

    def _on_pong(self, data=None) -> None:
        # one pong answers the oldest outstanding ping
        while self._pending_pongs:
            fut = self._pending_pongs.pop(0)
            if not fut.done():
                fut.set_result(data)
                return
