import threading
import time
from typing import Callable


class RateLimiter:
    """Minimum-spacing limiter for outbound calls to one provider.

    ``acquire()`` blocks until at least ``min_interval`` seconds have passed
    since the previous permitted call. Callers are serialised on a lock, so
    concurrent searches queue rather than burst.
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call = None
        self._lock = threading.Lock()

    @classmethod
    def per_second(cls, max_requests: float, **kwargs) -> "RateLimiter":
        """Build a limiter allowing roughly ``max_requests`` calls per second."""
        if max_requests <= 0:
            return cls(0.0, **kwargs)
        return cls(1.0 / max_requests, **kwargs)

    def acquire(self) -> float:
        """Wait for the next slot. Returns the number of seconds waited."""
        with self._lock:
            now = self._clock()
            waited = 0.0
            if self._last_call is not None:
                wait = self._last_call + self.min_interval - now
                if wait > 0:
                    self._sleep(wait)
                    waited = wait
                    now = now + wait
            self._last_call = now
            return waited
