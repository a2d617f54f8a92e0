"""Client-side rate limiting for the Katana API.

Katana allows 5 requests/second (300/minute) per API key. The gate keeps a
minimum spacing between dispatches so a single process never exceeds it.
"""

import asyncio
import time
import weakref
from typing import Callable, Optional

from core.observability.logging import get_logger
from core.observability.metrics import record_rate_gate

logger = get_logger(__name__)

DEFAULT_MIN_INTERVAL = 0.2  # seconds, 5 requests/second


class RateGate:
    """Minimum-interval throttle shared by every client that holds it.

    The read-wait-stamp sequence runs under an ``asyncio.Lock`` so callers
    overlapping in time queue up behind each other instead of both computing
    a short wait from the same stale timestamp. An asyncio lock belongs to
    one event loop, so the gate keeps one lock per running loop; the
    dispatch timestamp is shared by all of them.

    Usage:
        gate = RateGate(min_interval=0.2)
        await gate.acquire()   # returns immediately the first time
        await gate.acquire()   # suspends ~200ms
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the gate.

        Args:
            min_interval: Minimum seconds between two dispatches
            clock: Monotonic clock, injectable for tests
        """
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._last_dispatch: Optional[float] = None
        self._locks = weakref.WeakKeyDictionary()  # event loop -> asyncio.Lock

    @property
    def last_dispatch(self) -> Optional[float]:
        """Clock reading of the most recent dispatch, None before the first."""
        return self._last_dispatch

    def _loop_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        lock = self._locks.get(loop)
        if lock is None:
            lock = self._locks[loop] = asyncio.Lock()
        return lock

    async def acquire(self) -> float:
        """Wait until a dispatch is allowed, then stamp it.

        Returns:
            Seconds spent waiting, measured on the gate's clock (0.0 when no
            wait was needed)
        """
        async with self._loop_lock():
            waited = 0.0
            if self._last_dispatch is not None:
                remaining = self.min_interval - (self._clock() - self._last_dispatch)
                if remaining > 0:
                    logger.debug(f"Rate gate holding request for {remaining * 1000:.0f}ms")
                    started = self._clock()
                    # The event loop may wake a timer marginally early.
                    while remaining > 0:
                        await asyncio.sleep(remaining)
                        remaining = self.min_interval - (self._clock() - self._last_dispatch)
                    waited = self._clock() - started
            self._last_dispatch = self._clock()

        record_rate_gate(waited * 1000)
        return waited


_default_gate: Optional[RateGate] = None


def get_default_rate_gate() -> RateGate:
    """Get the process-wide gate used by clients not given their own."""
    global _default_gate
    if _default_gate is None:
        _default_gate = RateGate()
    return _default_gate
