from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Set, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_DEBOUNCE_SECONDS = 0.5


class KeyedDebouncer(Generic[T]):
    """
    Trailing debounce with one timer per key.

    Each `call` for a key cancels that key's pending timer and starts a new one,
    so only the last value of a burst reaches the callback, `delay` seconds after
    the burst ends. Keys never wait on each other.
    """

    def __init__(self, callback: Callable[[T], Awaitable[None]], delay: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
        self.callback = callback
        self.delay = delay
        self._timers: Dict[str, Tuple[asyncio.TimerHandle, T]] = {}
        self._tasks: Set[asyncio.Task] = set()
        self.logger = logging.getLogger(__name__)

    def call(self, key: str, value: T) -> None:
        loop = asyncio.get_running_loop()
        pending = self._timers.pop(key, None)
        if pending is not None:
            pending[0].cancel()
        handle = loop.call_later(self.delay, self._fire, key)
        self._timers[key] = (handle, value)

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    def scheduled_at(self, key: str) -> float | None:
        """
        Loop time at which the key's pending invocation fires, if any.
        """
        pending = self._timers.get(key)
        return pending[0].when() if pending else None

    @property
    def busy(self) -> bool:
        return bool(self._timers or self._tasks)

    def cancel(self) -> None:
        for handle, _ in self._timers.values():
            handle.cancel()
        self._timers.clear()
        for task in list(self._tasks):
            task.cancel()

    async def wait_idle(self) -> None:
        """
        Wait until no timer is pending and every fired callback has finished.
        """
        loop = asyncio.get_running_loop()
        while self._timers or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
                continue
            next_fire = min(handle.when() for handle, _ in self._timers.values())
            await asyncio.sleep(max(next_fire - loop.time(), 0))
            # let call_later callbacks due now run before re-checking
            await asyncio.sleep(0)

    def _fire(self, key: str) -> None:
        pending = self._timers.pop(key, None)
        if pending is None:
            return
        task = asyncio.get_running_loop().create_task(self.callback(pending[1]))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Debounced callback failed", exc_info=exc)
