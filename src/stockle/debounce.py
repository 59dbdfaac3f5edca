"""
Delay-and-coalesce for rapid text input.

A Debouncer keeps at most one pending timer. Each new value cancels the
pending timer and starts a fresh one, so the callback only ever sees the
newest value once input has been quiet for `delay` seconds.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Generic, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class Debouncer(Generic[T]):
    """
    Example:
        >>> debouncer = Debouncer(view.submit_query, delay=0.3)
        >>> for text in ("r", "re", "rea"):
        ...     debouncer.push(text)      # only "rea" reaches submit_query
    """

    def __init__(
        self,
        callback: Callable[[T], Any],
        delay: float = 0.3,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.callback = callback
        self.delay = delay
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._value: Any = _MISSING
        self._tasks: Set[asyncio.Task] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def pending_value(self) -> Optional[T]:
        return None if self._value is _MISSING else self._value

    def push(self, value: T) -> None:
        """Replace whatever is pending with `value` and restart the timer."""
        if self._handle is not None:
            self._handle.cancel()
        self._value = value
        self._handle = self._get_loop().call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending value; returns False if nothing was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._value = _MISSING
        return True

    def flush(self) -> bool:
        """Deliver the pending value now instead of waiting for the timer."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        value = self._value
        self._handle = None
        self._value = _MISSING
        if value is _MISSING:
            return
        logger.debug("Debounced value delivered: %r", value)
        result = self.callback(value)
        if asyncio.iscoroutine(result):
            task = self._get_loop().create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounced callback failed", exc_info=exc)

    def __repr__(self) -> str:
        return f"<Debouncer delay={self.delay} pending={self.pending}>"
