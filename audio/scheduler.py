"""Tick scheduling for the detector's cooperative sampling loop."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol


class TickScheduler(Protocol):
    """Runs one callback later on the owning event loop."""

    def schedule(self, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class AsyncioTickScheduler:
    """Reschedules ticks on an asyncio loop; spacing is nominal, never exact."""

    def __init__(self, interval_s: float = 1 / 60, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.interval_s = interval_s
        self._loop = loop

    def schedule(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(self.interval_s, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
