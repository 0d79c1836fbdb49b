"""Periodic tick sources that drive the countdown."""

from __future__ import annotations

import threading
from typing import Callable, Protocol


class Ticker(Protocol):
    """Calls a callback once per period until stopped."""

    def start(self, on_tick: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class IntervalTicker:
    """Blocking tick loop that runs in the calling thread.

    :meth:`start` returns once :meth:`stop` has been called, either from
    inside *on_tick* or from another thread.  An exception raised by
    *on_tick* also ends the loop and propagates to the caller of
    :meth:`start`.
    """

    def __init__(self, period: float = 1.0) -> None:
        if period < 0:
            raise ValueError(f"period must not be negative, got {period}")
        self._period = period
        self._stopped = threading.Event()

    @property
    def period(self) -> float:
        return self._period

    def start(self, on_tick: Callable[[], None]) -> None:
        self._stopped.clear()
        try:
            while not self._stopped.wait(self._period):
                on_tick()
        finally:
            self._stopped.set()

    def stop(self) -> None:
        self._stopped.set()
