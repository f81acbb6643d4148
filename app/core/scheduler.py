"""
Recurring Timer
===============
asyncio replacement for a setInterval handle.

Each timer owns exactly one sleeping task. `reschedule(interval_ms)`
cancels that task and arms a new one, so interval changes apply from the
next cycle and handles never stack up. Callers never see the task.

Firing semantics:
    - plain callbacks run inline on the event loop
    - callbacks returning an awaitable are spawned as separate tasks and
      tracked until done; a slow callback therefore does not delay the
      next firing, and two invocations may be in flight at once
    - exceptions raised by a callback are logged, never kill the timer
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)


class RecurringTimer:
    """
    Fires `callback` every `interval_ms` milliseconds once armed.

    Usage:
        timer = RecurringTimer(monitor.refresh, name="deploy-poll")
        timer.reschedule(120_000)
        ...
        timer.reschedule(15_000)   # old handle cancelled, new one armed
        timer.cancel()
    """

    def __init__(self, callback: Callable[[], Any], name: str = "timer") -> None:
        self._callback = callback
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._interval_ms: Optional[int] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def interval_ms(self) -> Optional[int]:
        return self._interval_ms

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def reschedule(self, interval_ms: int) -> None:
        """Cancel the current handle (if any) and re-arm at `interval_ms`."""
        if interval_ms <= 0:
            raise ValueError(f"{self._name}: interval must be positive, got {interval_ms}")
        self.cancel()
        self._interval_ms = interval_ms
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(interval_ms), name=self._name)
        logger.debug("%s armed at %dms", self._name, interval_ms)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def drain(self) -> None:
        """Wait for spawned callback tasks to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _run(self, interval_ms: int) -> None:
        while True:
            await asyncio.sleep(interval_ms / 1000)
            self.fire()

    def fire(self) -> None:
        """Invoke the callback once, spawning it if it is a coroutine."""
        try:
            result = self._callback()
        except Exception as e:
            logger.error("%s callback failed: %s", self._name, e, exc_info=True)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._inflight.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s callback task failed: %s", self._name, exc)
