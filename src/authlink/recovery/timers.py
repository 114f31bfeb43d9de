"""Scheduled callbacks tied to the lifetime of a view.

Every timer a view starts is owned by its TimerScope. Closing the scope
(on disconnect, navigation, or error) cancels whatever is still pending,
so no callback ever runs against a discarded view.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation handle for one scheduled callback."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the callback to finish (or be cancelled)."""
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise


async def _invoke(callback: Callable[[], Any]) -> Any:
    result = callback()
    if inspect.isawaitable(result):
        result = await result
    return result


class TimerScope:
    """Owner of the timers started by one view.

    Attributes:
        name: Label used in log messages.
    """

    def __init__(self, name: str = "view") -> None:
        self.name = name
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of timers that have not finished yet."""
        return sum(1 for task in self._tasks if not task.done())

    def _check_open(self) -> None:
        if self._closed:
            msg = f"Timer scope {self.name!r} is closed"
            raise RuntimeError(msg)

    def _start(self, coro: Awaitable[None]) -> TimerHandle:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return TimerHandle(task)

    def call_later(
        self, delay: float, callback: Callable[[], Awaitable[None] | None]
    ) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds.

        The callback may be a plain function or a coroutine function.
        """
        self._check_open()

        async def _once() -> None:
            await asyncio.sleep(delay)
            try:
                await _invoke(callback)
            except Exception:
                logger.exception("Timer callback failed in scope %s", self.name)

        return self._start(_once())

    def every(
        self,
        interval: float,
        callback: Callable[[], Awaitable[bool] | bool],
    ) -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds while it returns True."""
        self._check_open()

        async def _repeat() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    keep_going = await _invoke(callback)
                except Exception:
                    logger.exception("Repeating timer failed in scope %s", self.name)
                    return
                if not keep_going:
                    return

        return self._start(_repeat())

    def close(self) -> None:
        """Cancel every pending timer and refuse new ones."""
        self._closed = True
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("Cancelled %d timer(s) in scope %s", len(pending), self.name)

    async def __aenter__(self) -> TimerScope:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
