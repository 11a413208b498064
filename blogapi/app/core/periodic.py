"""Cancellable periodic background task bound to the application lifespan."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from blogapi.app.core.logging import get_logger


class PeriodicTask:
    """Runs an async callable every ``interval`` seconds until stopped.

    Usage:
        task = PeriodicTask("rate-limit-sweep", limiter.sweep, interval=300)
        await task.start()
        ...
        await task.stop()

    The first run happens one interval after :meth:`start`. A failing run is
    logged and the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[object]],
        interval: float,
        logger: Optional[logging.Logger] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self._func = func
        self._interval = interval
        self._logger = logger or get_logger(__name__)
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop on the running event loop."""
        if self._task is not None:
            self._logger.debug(f"Periodic task '{self.name}' already running")
            return

        # Created here so the event belongs to the loop that runs the task.
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=self.name)
        self._logger.info(f"Started periodic task '{self.name}' (interval: {self._interval}s)")

    async def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to exit and wait for it, cancelling on timeout."""
        if self._task is None:
            return

        assert self._stop_event is not None
        self._stop_event.set()

        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            self._logger.warning(f"Periodic task '{self.name}' did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            self._stop_event = None
            self._logger.info(f"Stopped periodic task '{self.name}'")

    async def _run(self) -> None:
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                # Normal case: interval elapsed
                pass
            else:
                break

            try:
                await self._func()
            except Exception as e:
                self._logger.error(f"Periodic task '{self.name}' failed: {e}")
