from __future__ import annotations

import httpx

from stickdrive.core.config import ChannelSettings
from stickdrive.core.events import Signal
from stickdrive.core.types import ChannelReply
from stickdrive.link.channel import POWER_OFF, ChannelError


class HttpChannel:
    """
    Stateless request/response binding: one GET per command,
    addressed as {base}/robot/{symbol}/{speed}.
    """

    fallback_symbol = "stop"

    def __init__(
        self,
        base_url: str | None = None,
        settings: ChannelSettings = ChannelSettings(),
        ping_timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.http_base_url).rstrip("/")
        self.timeout_s = settings.request_timeout_s
        self.ping_timeout_s = ping_timeout_s
        self.connection: Signal[bool] = Signal("http.connection")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def is_connected(self) -> bool:
        return self._client is not None and not self._client.is_closed

    async def connect(self) -> None:
        if self.is_connected():
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )
        print(f"[Link] HTTP channel ready: {self.base_url}")
        self.connection.publish(True)

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()
        self.connection.publish(False)

    async def send(self, symbol: str, speed: int) -> ChannelReply:
        data = await self._get(f"/robot/{symbol}/{int(speed)}", timeout=self.timeout_s)
        code = data.get("code") if isinstance(data, dict) else None
        return ChannelReply(ok=True, code=str(code) if code is not None else None)

    async def ping(self) -> None:
        await self._get("/health/ping", timeout=self.ping_timeout_s, parse=False,
                        headers={"Cache-Control": "no-cache"})

    async def emergency_stop(self) -> ChannelReply:
        # no dedicated endpoint; the power-off symbol halts the chassis
        return await self.send(POWER_OFF, 0)

    async def _get(self, path: str, timeout: float, parse: bool = True, headers: dict | None = None):
        if self._client is None:
            raise ChannelError("http channel not connected")
        try:
            resp = await self._client.get(path, timeout=timeout, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ChannelError(f"HTTP error! status: {e.response.status_code}",
                               code=str(e.response.status_code)) from e
        except httpx.RequestError as e:
            raise ChannelError(f"request failed: {e!r}") from e

        if not parse:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ChannelError("malformed response body") from e
