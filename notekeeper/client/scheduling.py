"""
Timers for the editor controller.

PendingTimer is a single-slot trailing-edge debounce on the running event
loop. DoubleEnterDetector recognises two Enter presses in quick succession.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from notekeeper.backend.core.logging import get_logger

logger = get_logger(__name__)


class PendingTimer:
    """
    Run an async callback once after the last schedule() call.

    Rescheduling cancels the pending sleep; a callback that has already
    started is never cancelled. Callback exceptions are logged, not raised,
    because nothing awaits the timer task.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        name: str = "timer",
    ) -> None:
        self.delay = delay
        self.name = name
        self._callback = callback
        self._pending: asyncio.Task[None] | None = None
        self._running: set[asyncio.Task[None]] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        """True while a scheduled callback has not started yet."""
        return self._pending is not None and not self._pending.done()

    @property
    def running(self) -> bool:
        return bool(self._running)

    def schedule(self, delay: float | None = None) -> None:
        """(Re)start the countdown. Must be called from the event loop."""
        self.cancel()
        task = asyncio.get_running_loop().create_task(
            self._run(self.delay if delay is None else delay),
            name=f"{self.name}-pending",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._pending = task

    def cancel(self) -> None:
        """Drop the pending callback, if it has not started."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def flush(self) -> bool:
        """
        Run the pending callback now.

        Returns:
            True if a pending callback was run, False if nothing was pending
        """
        if not self.pending:
            await self.drain()
            return False
        self.cancel()
        await self._callback()
        return True

    async def drain(self) -> None:
        """Wait for callbacks that have already started."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    async def _run(self, delay: float) -> None:
        await asyncio.sleep(delay)
        task = asyncio.current_task()
        if self._pending is task:
            self._pending = None
        self._running.add(task)
        try:
            await self._callback()
        except Exception:
            logger.exception("Scheduled callback failed", extra={"timer": self.name})
        finally:
            self._running.discard(task)


class DoubleEnterDetector:
    """
    Detect two Enter presses within a time window.

    The second press counts only if it arrives more than min_interval and
    less than window seconds after the first. A detected pair resets the
    detector, so a third press starts a new pair.
    """

    def __init__(
        self,
        window: float = 0.8,
        min_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window = window
        self.min_interval = min_interval
        self._clock = clock
        self._last: float | None = None

    def register(self) -> bool:
        """Record an Enter press; True if it completes a double-Enter."""
        now = self._clock()
        if self._last is not None and self.min_interval < now - self._last < self.window:
            self._last = None
            return True
        self._last = now
        return False

    def reset(self) -> None:
        self._last = None
