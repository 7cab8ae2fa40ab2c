import threading
from typing import Dict, Iterable, List

from mediadash.models.log_entry import LogEntry

DEFAULT_CAPACITY = 500


class LogStore:
    """
    Bounded per-service cache of normalized log entries, newest first.

    Eviction is by recency only: a burst of low-severity entries can push an
    older CRITICAL entry out of the cache.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got: {capacity}")
        self.capacity = capacity
        self._caches: Dict[int, List[LogEntry]] = {}
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, service_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(service_id)
            if lock is None:
                lock = self._locks[service_id] = threading.Lock()
            return lock

    def merge(self, service_id: int, new_entries: Iterable[LogEntry]) -> None:
        """Union new entries into a service's cache, re-sort and truncate to capacity."""
        with self._lock_for(service_id):
            combined = list(new_entries) + self._caches.get(service_id, [])
            combined.sort(key=lambda entry: entry.timestamp, reverse=True)
            # Replace rather than mutate so readers never see a partial list
            self._caches[service_id] = combined[:self.capacity]

    def get(self, service_id: int) -> List[LogEntry]:
        return list(self._caches.get(service_id, ()))

    def __contains__(self, service_id: int) -> bool:
        return service_id in self._caches

    def service_ids(self) -> List[int]:
        return list(self._caches.keys())

    def snapshot(self) -> Dict[int, List[LogEntry]]:
        return {service_id: list(entries) for service_id, entries in list(self._caches.items())}

    def size(self, service_id: int) -> int:
        return len(self._caches.get(service_id, ()))

    def total_size(self) -> int:
        return sum(len(entries) for entries in list(self._caches.values()))
