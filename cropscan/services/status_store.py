import threading
from dataclasses import dataclass, field
from typing import Optional, List

MAX_LOG_LINES = 200


@dataclass
class StatusStore:
    last_state: Optional[str] = None
    last_error: Optional[str] = None
    last_result_id: Optional[str] = None
    active_runs: int = 0
    logs: List[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def busy(self) -> bool:
        return self.active_runs > 0

    def run_started(self):
        with self._lock:
            self.active_runs += 1

    def run_finished(self):
        with self._lock:
            self.active_runs = max(0, self.active_runs - 1)

    def log(self, msg: str):
        with self._lock:
            self.logs.append(msg)
            if len(self.logs) > MAX_LOG_LINES:
                self.logs = self.logs[-MAX_LOG_LINES:]
