from __future__ import annotations

import asyncio
import time
from typing import Callable

from stickdrive.core.config import HealthTuning
from stickdrive.core.events import Signal, Subscription
from stickdrive.core.types import SignalReading
from stickdrive.link.channel import ChannelError, CommandChannel


def level_for_latency(latency_ms: float, tuning: HealthTuning = HealthTuning()) -> int:
    for bound, level in tuning.buckets:
        if latency_ms < bound:
            return level
    return 1


class HealthSampler:
    """
    Periodic round-trip probe -> 0..4 signal level.

    Driven by tick(t_ms) from the owner's loop. Samples once right after
    activate() and again right after the channel reconnects; otherwise every
    period_ms. A failed probe is not retried before the next period.
    """

    def __init__(
        self,
        channel: CommandChannel,
        tuning: HealthTuning = HealthTuning(),
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.channel = channel
        self.tuning = tuning
        self._clock = clock
        self.readings: Signal[SignalReading] = Signal("health.readings")
        self.last: SignalReading | None = None

        self._active = False
        self._next_due_ms: int | None = None
        self._last_t_ms = 0
        self._sub: Subscription | None = None

    # ---------------------- lifecycle ----------------------

    def activate(self, t_ms: int) -> None:
        if self._active:
            return
        self._active = True
        self._next_due_ms = t_ms
        self._last_t_ms = t_ms
        self._sub = self.channel.connection.subscribe(self._on_connection)

    def deactivate(self) -> None:
        if not self._active:
            return
        self._active = False
        self._next_due_ms = None
        if self._sub is not None:
            self._sub.dispose()
            self._sub = None

    @property
    def active(self) -> bool:
        return self._active

    # ---------------------- scheduling ----------------------

    def due(self, t_ms: int) -> bool:
        return self._active and self._next_due_ms is not None and t_ms >= self._next_due_ms

    async def tick(self, t_ms: int) -> SignalReading | None:
        self._last_t_ms = t_ms
        if not self.due(t_ms):
            return None
        self._next_due_ms = t_ms + self.tuning.period_ms
        return await self.sample(t_ms)

    async def sample(self, t_ms: int) -> SignalReading:
        if not self.channel.is_connected():
            return self._publish(SignalReading(level=0, latency_ms=None, t_ms=t_ms))

        start = self._clock()
        try:
            await asyncio.wait_for(self.channel.ping(), timeout=self.tuning.timeout_s)
        except (ChannelError, asyncio.TimeoutError):
            return self._publish(SignalReading(level=1, latency_ms=None, t_ms=t_ms))

        latency = (self._clock() - start) * 1000.0
        return self._publish(SignalReading(
            level=level_for_latency(latency, self.tuning),
            latency_ms=round(latency, 1),
            t_ms=t_ms,
        ))

    # ---------------------- helpers ----------------------

    def _on_connection(self, connected: bool) -> None:
        if connected:
            # resample on the very next tick
            self._next_due_ms = 0
        else:
            self._publish(SignalReading(level=0, latency_ms=None, t_ms=self._last_t_ms))

    def _publish(self, reading: SignalReading) -> SignalReading:
        self.last = reading
        self.readings.publish(reading)
        return reading
