"""Sliding-window character rate limiter for the translation provider."""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable


class SlidingWindowRateLimiter:
    """Limits the number of characters sent within a trailing time window.

    Observations are kept as a deque of ``(timestamp, char_count)`` pairs and
    evicted lazily once they fall out of the window. Requests that would exceed
    the budget are delayed, never rejected.

    A single request larger than ``max_chars`` can never fit, so it is let
    through once the window is idle. That is the only case in which the
    characters inside one window exceed the budget.

    Characters of requests that passed acquire() but have not yet completed are
    held as a pending reservation and count towards the budget, so concurrent
    callers cannot overshoot it. A reservation becomes a window observation via
    record() after a successful send, or is dropped via release() on failure.

    The lock only guards the window bookkeeping; it is never held while
    sleeping or while the caller performs the network request.
    """

    def __init__(
        self,
        max_chars: int,
        logger: logging.Logger,
        window_seconds: float = 60.0,
        safety_margin_seconds: float = 5.0,
        poll_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be greater than 0")
        self.max_chars = max_chars
        self.window_seconds = window_seconds
        self.safety_margin_seconds = safety_margin_seconds
        self.poll_seconds = poll_seconds
        self.logging = logger
        self._clock = clock
        self._sleep = sleep
        self._window: deque[tuple[float, int]] = deque()
        self._window_chars = 0
        self._pending_chars = 0
        self._lock = asyncio.Lock()

    ##########################################
    ############### INTERNAL #################
    ##########################################

    def _evict(self, now: float) -> None:
        while self._window and (now - self._window[0][0]) > self.window_seconds:
            _, chars = self._window.popleft()
            self._window_chars -= chars

    def _compute_wait(self, char_count: int, now: float) -> float:
        """Return 0 if the request fits now, otherwise the seconds to wait before re-evaluating."""
        used = self._window_chars + self._pending_chars
        if used + char_count <= self.max_chars:
            return 0.0
        # an oversized request can never fit, let it through on an idle window
        if used == 0:
            return 0.0
        if self._window:
            oldest = self._window[0][0]
            return max(self.window_seconds - (now - oldest), 0.0) + self.safety_margin_seconds
        # only in-flight reservations occupy the budget
        return self.poll_seconds

    ##########################################
    ################ PUBLIC ##################
    ##########################################

    async def get_chars_in_window(self) -> int:
        """Return the characters recorded within the current window (excluding reservations)."""
        async with self._lock:
            self._evict(self._clock())
            return self._window_chars

    async def acquire(self, char_count: int) -> None:
        """Wait until ``char_count`` characters fit into the window, then reserve them.

        Args:
            char_count (int): Number of characters the caller is about to send.
        """
        while True:
            async with self._lock:
                now = self._clock()
                self._evict(now)
                wait = self._compute_wait(char_count, now)
                if wait <= 0:
                    self._pending_chars += char_count
                    return
                chars_in_window = self._window_chars + self._pending_chars

            self.logging.warning(
                "Rate limit reached: %d/%d chars. Waiting %ds",
                chars_in_window,
                self.max_chars,
                int(wait),
            )
            await self._sleep(wait)

    async def record(self, char_count: int) -> None:
        """Turn a reservation into a window observation after a successful send."""
        async with self._lock:
            self._pending_chars = max(self._pending_chars - char_count, 0)
            self._window.append((self._clock(), char_count))
            self._window_chars += char_count

    async def release(self, char_count: int) -> None:
        """Drop a reservation whose request failed or was cancelled."""
        async with self._lock:
            self._pending_chars = max(self._pending_chars - char_count, 0)
