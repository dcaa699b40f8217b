"""Shared counter stores backing the rate limiter."""

import math
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class CounterStore(Protocol):
    """Fixed-window counters with atomic increment-with-expiry."""

    def increment(self, key: str, amount: int, decay_seconds: int) -> int:
        """Add ``amount`` to the window, opening it with ``decay_seconds`` if absent.

        Returns the new count. The window's expiry is set only when the window
        is created; later increments never extend it.
        """

    def attempts(self, key: str) -> int:
        """Return the count of the current window, or 0 if none is open."""

    def available_in(self, key: str) -> int:
        """Return whole seconds until the current window expires, or 0."""

    def clear(self, key: str) -> None:
        """Drop the current window."""


@dataclass
class _Window:
    count: int
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class InMemoryCounterStore(CounterStore):
    """Thread-safe counter store for a single process.

    Counters live in process memory, so each worker process would enforce its
    own quota. Use it for single-process deployments and tests; multi-process
    deployments share ``RedisCounterStore``.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def increment(self, key: str, amount: int, decay_seconds: int) -> int:
        """Atomically add to the window, creating it if absent or expired."""
        with self._lock:
            now = self._clock()
            window = self._live_window(key, now)
            if window is None:
                window = _Window(
                    count=0, expires_at=now + timedelta(seconds=decay_seconds)
                )
                self._windows[key] = window
            window.count += amount
            return window.count

    def attempts(self, key: str) -> int:
        """Return the current window's count."""
        with self._lock:
            window = self._live_window(key, self._clock())
            return window.count if window else 0

    def available_in(self, key: str) -> int:
        """Return seconds until the window expires."""
        with self._lock:
            now = self._clock()
            window = self._live_window(key, now)
            if window is None:
                return 0
            return max(0, math.ceil((window.expires_at - now).total_seconds()))

    def clear(self, key: str) -> None:
        """Drop the window for ``key``."""
        with self._lock:
            self._windows.pop(key, None)

    def _live_window(self, key: str, now: datetime) -> _Window | None:
        window = self._windows.get(key)
        if window is None:
            return None
        if now >= window.expires_at:
            self._windows.pop(key, None)
            return None
        return window
