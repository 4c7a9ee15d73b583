from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional


class Debouncer:
    """Run an async callback once the triggers have been quiet for `delay` seconds.

    Only the pending timer is cancelled on a new trigger. A callback that has
    already started keeps running (a stale fetch can still land).
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]):
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def trigger(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._task = asyncio.ensure_future(self._callback())

    async def wait(self) -> None:
        """Await the last callback that fired, if any."""
        if self._task is not None:
            await self._task
