"""
One-shot, time-boxed cancellation.

`CancellationTimer.start(duration)` returns a `CancellationSignal` that flips
from "continue" to "stop" exactly once, `duration` seconds later. The firing
is scheduled on the event loop (`loop.call_later`), not inside any worker, so
a slow batch cannot postpone it and nothing can un-fire it.

Tests inject their own `schedule` callable and fire the callback by hand, so
no real wall-clock delay is needed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class _Handle(Protocol):
    def cancel(self) -> None: ...


Schedule = Callable[[float, Callable[[], None]], _Handle]


class CancellationSignal:
    """
    Single-writer, many-reader stop flag.

    `is_set()` is a plain attribute read and needs no lock; the only writer is
    the timer callback. Once set it stays set.
    """

    __slots__ = ("_fired", "_fired_at", "_event", "_clock")

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._fired = False
        self._fired_at: Optional[float] = None
        self._event = asyncio.Event()
        self._clock = clock

    def is_set(self) -> bool:
        return self._fired

    @property
    def fired_at(self) -> Optional[float]:
        """Clock reading at the moment the signal fired, if it has."""
        return self._fired_at

    async def wait(self) -> None:
        """Block until the signal fires."""
        await self._event.wait()

    def _fire(self) -> bool:
        if self._fired:
            return False
        self._fired_at = self._clock()
        self._fired = True
        self._event.set()
        return True


def _loop_schedule(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class CancellationTimer:
    """
    Schedules exactly one firing of a `CancellationSignal`.

    A timer is bound to one run: `start()` may be called once, `cancel()`
    tears it down at the end of the run.
    """

    def __init__(
        self,
        *,
        schedule: Optional[Schedule] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._schedule: Schedule = schedule or _loop_schedule
        self._clock = clock
        self._handle: Optional[Any] = None
        self._signal: Optional[CancellationSignal] = None
        self.duration_seconds: Optional[float] = None

    @property
    def signal(self) -> Optional[CancellationSignal]:
        return self._signal

    def start(self, duration_seconds: float) -> CancellationSignal:
        """
        Arm the timer.

        Args:
            duration_seconds: Delay before the signal fires (> 0)

        Returns:
            The signal that will fire once the delay elapses
        """
        if self._signal is not None:
            raise RuntimeError("CancellationTimer is one-shot and was already started")
        if duration_seconds <= 0:
            raise ValueError(f"duration must be positive, got {duration_seconds}")

        signal = CancellationSignal(clock=self._clock)
        self._signal = signal
        self.duration_seconds = float(duration_seconds)
        self._handle = self._schedule(self.duration_seconds, self._on_timeout)
        logger.debug("Cancellation timer armed for %.3fs", self.duration_seconds)
        return signal

    def _on_timeout(self) -> None:
        self._handle = None
        if self._signal is not None and self._signal._fire():
            logger.info("Run time budget of %.3fs elapsed, stopping workers", self.duration_seconds)

    def cancel(self) -> None:
        """
        Discard the timer at run end.

        An unfired handle is cancelled and the signal is set, so no worker of
        an aborted run keeps looping.
        """
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
        if self._signal is not None:
            self._signal._fire()
