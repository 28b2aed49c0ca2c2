"""
Turn Timers.

Named, cancellable one-shot timeouts on the running event loop. The
orchestrator owns one instance and cancels everything on phase exit and
reset, so a stale callback can never fire into a new interview.

A callback that has already started is left to finish; only timers that
have not fired yet are cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


TimerCallback = Callable[[], Awaitable[None]]


class TurnTimers:
    """
    Registry of named timers.

    Example:
        >>> timers = TurnTimers()
        >>> timers.schedule("intro", 3.0, orchestrator.begin_interview)
        >>> timers.pending("intro")
        True
        >>> timers.cancel_all()
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task[None]] = set()

    def schedule(self, name: str, delay: float, callback: TimerCallback) -> None:
        """
        Run `callback()` after `delay` seconds, replacing any timer with
        the same name.

        Must be called from inside a running event loop.
        """
        self.cancel(name)
        loop = asyncio.get_running_loop()
        self._handles[name] = loop.call_later(max(delay, 0.0), self._fire, name, callback)
        logger.debug("Timer '%s' scheduled in %.2fs", name, delay)

    def _fire(self, name: str, callback: TimerCallback) -> None:
        self._handles.pop(name, None)
        task = asyncio.ensure_future(callback())
        self._running.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Timer callback failed", exc_info=task.exception())

    def cancel(self, name: str) -> bool:
        """Cancel one timer. Returns False when it was not pending."""
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("Timer '%s' cancelled", name)
        return True

    def cancel_all(self) -> None:
        for name in list(self._handles):
            self.cancel(name)

    def pending(self, name: str) -> bool:
        return name in self._handles

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._handles)

    async def drain(self) -> None:
        """Wait for callbacks that have already fired to finish."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
