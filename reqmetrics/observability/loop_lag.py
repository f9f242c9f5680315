"""Sampling of event loop lag into a gauge."""

from __future__ import annotations

import asyncio
import contextlib
import logging

logger = logging.getLogger("reqmetrics.metrics")


class EventLoopLagMonitor:
    """Periodically measure how late the event loop wakes a sleeping task.

    Used as an async context manager around the lifetime of the server; the
    sampling task is cancelled on exit.
    """

    def __init__(self, gauge, interval: float = 0.5) -> None:
        self._gauge = gauge
        self._interval = interval
        self._task: asyncio.Task | None = None

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            expected = loop.time() + self._interval
            await asyncio.sleep(self._interval)
            self._gauge.set(max(loop.time() - expected, 0.0))

    async def __aenter__(self) -> "EventLoopLagMonitor":
        self._task = asyncio.create_task(self.run())
        logger.debug("Sampling event loop lag every %.3fs", self._interval)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None


__all__ = ["EventLoopLagMonitor"]
