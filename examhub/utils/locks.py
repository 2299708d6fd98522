import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Tuple


class KeyedLock:
    """One mutex per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._locks: Dict[Hashable, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: Hashable):
        with self._registry_lock:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._registry_lock:
                _, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)


attempt_locks = KeyedLock()
