import threading
import time
from typing import Callable

MAX_PER_PERIOD = 5
PERIOD_S = 30 * 24 * 3600.0


class UsageTracker:
    """Per-user identification quota over a rolling 30-day period.

    A run reserves its slot up front with try_reserve() and hands it back with
    release() if it does not complete, so concurrent runs from one user cannot
    overshoot the quota.
    """

    def __init__(self, max_per_period: int = MAX_PER_PERIOD, period_s: float = PERIOD_S,
                 clock: Callable[[], float] = time.time):
        self.max_per_period = max_per_period
        self.period_s = period_s
        self._clock = clock
        self._used: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def _recent(self, user_id: str, now: float) -> list[float]:
        stamps = [t for t in self._used.get(user_id, []) if now - t < self.period_s]
        if stamps:
            self._used[user_id] = stamps
        else:
            self._used.pop(user_id, None)
        return stamps

    def try_reserve(self, user_id: str) -> bool:
        with self._lock:
            now = self._clock()
            stamps = self._recent(user_id, now)
            if len(stamps) >= self.max_per_period:
                return False
            stamps.append(now)
            self._used[user_id] = stamps
            return True

    def release(self, user_id: str):
        with self._lock:
            stamps = self._recent(user_id, self._clock())
            if stamps:
                stamps.pop()
            if not stamps:
                self._used.pop(user_id, None)

    def remaining(self, user_id: str) -> int:
        with self._lock:
            return max(0, self.max_per_period - len(self._recent(user_id, self._clock())))
