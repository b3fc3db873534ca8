"""Quiescence-window debouncer for rapidly changing input."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

from moviefinder.logging import logger

T = TypeVar("T")

_UNSET = object()


class Debouncer(Generic[T]):
    """Emit only the last value of a burst, once input has been quiet for ``delay`` seconds.

    Every ``push`` restarts the timer. When it elapses the pending value is
    handed to ``callback``; a push that lands while the callback is running
    schedules a fresh emission and leaves the running one alone.
    """

    def __init__(
        self,
        callback: Callable[[T], Awaitable[None]],
        *,
        delay: float = 0.5,
        name: str = "debouncer",
    ) -> None:
        if delay <= 0:
            raise ValueError("delay must be positive")
        self._callback = callback
        self._delay = delay
        self._name = name
        self._timer: asyncio.Task[None] | None = None
        self._pending: object = _UNSET
        self._settled: object = _UNSET
        self._running: set[asyncio.Task[None]] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._pending is not _UNSET

    @property
    def emitting(self) -> bool:
        return bool(self._running)

    @property
    def settled(self) -> T | None:
        if self._settled is _UNSET:
            return None
        return self._settled  # type: ignore[return-value]

    def push(self, value: T) -> None:
        self._cancel_timer()
        self._pending = value
        self._timer = asyncio.create_task(self._wait_and_emit(), name=f"{self._name}-timer")

    def cancel(self) -> None:
        self._cancel_timer()
        self._pending = _UNSET

    async def flush(self) -> None:
        """Emit the pending value now instead of waiting for the window."""

        self._cancel_timer()
        await self._emit()

    async def aclose(self, *, cancel_running: bool = True) -> None:
        """Drop pending input and settle emissions that are still running.

        Running callbacks are cancelled unless ``cancel_running`` is false,
        in which case they are awaited to completion.
        """

        self.cancel()
        current = asyncio.current_task()
        running = [task for task in self._running if task is not current]
        if not running:
            return
        if cancel_running:
            for task in running:
                task.cancel()
        await asyncio.gather(*running, return_exceptions=True)

    async def _wait_and_emit(self) -> None:
        await asyncio.sleep(self._delay)
        # Detach before emitting so a concurrent push does not cancel the callback.
        task = asyncio.current_task()
        self._timer = None
        if task is not None:
            self._running.add(task)
            task.add_done_callback(self._running.discard)
        await self._emit()

    async def _emit(self) -> None:
        if self._pending is _UNSET:
            return
        value = self._pending
        self._pending = _UNSET
        self._settled = value
        try:
            await self._callback(value)  # type: ignore[arg-type]
        except Exception:
            logger.exception("debounce_callback_failed", debouncer=self._name)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None


__all__ = ["Debouncer"]
