"""Registro dos rollups em andamento neste processo, consultado pela retenção."""

import threading
from collections import Counter
from contextlib import contextmanager
from datetime import datetime
from typing import Optional


class InFlightRollups:
    def __init__(self):
        self._lock = threading.Lock()
        self._windows = Counter()

    @contextmanager
    def track(self, window_start: datetime):
        with self._lock:
            self._windows[window_start] += 1
        try:
            yield
        finally:
            with self._lock:
                self._windows[window_start] -= 1
                if self._windows[window_start] <= 0:
                    del self._windows[window_start]

    def oldest_window_start(self) -> Optional[datetime]:
        with self._lock:
            return min(self._windows) if self._windows else None


inflight_rollups = InFlightRollups()
