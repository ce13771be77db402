import itertools
import threading


class CounterIds:
    """Sequential ids: ID1000, ID1001, ..."""

    def __init__(self, prefix: str = "ID", start: int = 1000):
        self.prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            return f"{self.prefix}{next(self._counter)}"
