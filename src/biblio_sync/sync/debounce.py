"""Debounce timer for async actions."""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, Set, TypeVar

from ..utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """
    Run an async action once input has been quiet for ``delay`` seconds.

    Every ``trigger`` restarts the countdown, so a burst of values results
    in exactly one call with the last value. Actions that already started
    are left to finish; they are not cancelled by later triggers.
    """

    def __init__(self, delay: float, action: Callable[[T], Awaitable[None]]) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._action = action
        self._timer: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()
        self._fire_count = 0

    def trigger(self, value: T) -> None:
        """(Re)start the countdown for ``value``. Must be called on the event loop."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._countdown(value))

    async def _countdown(self, value: T) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        self._fire_count += 1
        task = asyncio.get_running_loop().create_task(self._action(value))
        self._running.add(task)
        task.add_done_callback(self._on_action_done)

    def _on_action_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced action failed", exc_info=task.exception())

    @property
    def pending(self) -> bool:
        """True while a countdown is running or a fired action has not finished."""
        return self._timer is not None or bool(self._running)

    @property
    def fire_count(self) -> int:
        return self._fire_count

    async def wait_idle(self) -> None:
        """Wait until the countdown has fired and every started action is done."""
        while True:
            waiting: Set[asyncio.Task] = set(self._running)
            if self._timer is not None:
                waiting.add(self._timer)
            if not waiting:
                return
            await asyncio.wait(waiting)

    def cancel(self) -> None:
        """Drop the pending countdown; running actions are not touched."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
