import threading
import time
from dataclasses import dataclass
from typing import Callable

WINDOW_S = 60.0
DEFAULT_MAX_PER_MINUTE = 10


@dataclass
class RateWindow:
    window_start: float
    count: int = 0


class RateLimiter:
    """Sliding 60s request gate shared by every AI call in the process.

    Construct one and pass it to each caller that needs admission control.
    The lock is held only for the reset + increment + compare.
    """

    def __init__(self, max_per_minute: int = DEFAULT_MAX_PER_MINUTE,
                 clock: Callable[[], float] = time.monotonic):
        self.max_per_minute = max_per_minute
        self._clock = clock
        self._window = RateWindow(window_start=clock())
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            if now - self._window.window_start > WINDOW_S:
                self._window.count = 0
                self._window.window_start = now
            self._window.count += 1
            return self._window.count <= self.max_per_minute

    def snapshot(self) -> RateWindow:
        with self._lock:
            return RateWindow(window_start=self._window.window_start, count=self._window.count)
