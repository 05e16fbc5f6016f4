"""
Collapse concurrent calls for the same result into one execution.

When many requests notice an expired key set at the same moment, only the
first caller (the leader) runs the refresh. Everyone who arrives while it is
running attaches to the leader's ``Future`` and receives the same result, or
the same exception. Once the leader finishes, the next caller starts a new
flight.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._inflight: Future[T] | None = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    def do(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` unless a call is already running; then wait for that one."""
        with self._lock:
            future = self._inflight
            leader = future is None
            if leader:
                future = Future()
                self._inflight = future

        if not leader:
            return future.result()

        try:
            result = fn()
        except BaseException as exc:
            self._finish()
            future.set_exception(exc)
            raise
        self._finish()
        future.set_result(result)
        return result

    def _finish(self) -> None:
        # Clear before waking waiters so late arrivals start a fresh flight.
        with self._lock:
            self._inflight = None
