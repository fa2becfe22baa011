"""Per-key locking for check-then-write sequences on a single record."""

import threading
from contextlib import ExitStack, contextmanager


class KeyedLocks:
    """Hands out one re-entrant lock per key.

    Entries are created on first use and dropped once no thread holds or
    waits on them, so the table only ever contains keys in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict = {}
        self._holders: dict = {}

    def _acquire_entry(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _release_entry(self, key):
        with self._guard:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key):
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)

    @contextmanager
    def hold_many(self, keys):
        """Hold several keys at once, always acquired in sorted order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.hold(key))
            yield

    def __len__(self):
        with self._guard:
            return len(self._locks)
