"""
Debounced execution

A cancellable delayed call: every ``call`` restarts the quiet-period
timer, and only the latest call runs once the timer expires.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Coalesce bursts of calls into one invocation of ``callback``.

    Must be used from within a running event loop.

    Usage::

        saver = Debouncer(1.0, save_note)
        saver.call(note_id)   # timer starts
        saver.call(note_id)   # timer restarts, first call superseded
        # ~1s later: save_note(note_id) runs once

    Args:
        delay: Quiet period in seconds.
        callback: Coroutine function run with the latest call's arguments.
        on_error: Invoked with the exception when a timed run fails.
            Timed runs never propagate errors (nobody awaits them).
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[..., Awaitable[Any]],
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._on_error = on_error
        self._task: asyncio.Task[None] | None = None
        self._args: tuple[Any, ...] = ()
        self._kwargs: dict[str, Any] = {}
        self._armed = False

    @property
    def pending(self) -> bool:
        return self._armed

    def call(self, *args: Any, **kwargs: Any) -> None:
        """(Re)start the timer with these arguments."""
        self._cancel_timer()
        self._args, self._kwargs = args, kwargs
        self._armed = True
        self._task = asyncio.get_running_loop().create_task(self._run_later())

    async def flush(self) -> Any:
        """Run the pending call now. Returns None when nothing was pending."""
        if not self._armed:
            return None
        self._cancel_timer()
        return await self._invoke()

    def cancel(self) -> None:
        """Drop the pending call without running it."""
        self._cancel_timer()
        self._armed = False
        self._args, self._kwargs = (), {}

    async def _run_later(self) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        self._task = None
        try:
            await self._invoke()
        except Exception as e:
            logger.error("Debounced call failed: %s", e)
            if self._on_error is not None:
                self._on_error(e)

    async def _invoke(self) -> Any:
        args, kwargs = self._args, self._kwargs
        self._armed = False
        self._args, self._kwargs = (), {}
        return await self._callback(*args, **kwargs)

    def _cancel_timer(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
