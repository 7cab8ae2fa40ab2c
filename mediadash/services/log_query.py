from typing import List, Optional

from mediadash.models.log_entry import LogEntry
from mediadash.services.log_store import LogStore

ALL = 'all'


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


class QueryService:
    """Read-side filtering over the per-service log caches."""

    def __init__(self, store: LogStore):
        self.store = store

    def get_service_logs(self, service_id: int, facility: Optional[str] = None,
                         level: Optional[str] = None, limit: int = 100) -> List[LogEntry]:
        logs = self.store.get(service_id)

        if _is_set(facility):
            wanted = facility.lower()
            logs = [log for log in logs if log.facility.lower() == wanted]

        if _is_set(level):
            logs = [log for log in logs if log.level == level]

        return logs[:limit]

    def get_all_logs(self, level: Optional[str] = None, limit: int = 100) -> List[LogEntry]:
        logs = [log for entries in self.store.snapshot().values() for log in entries]
        # Each cache is bounded on its own, so cross-service order is rebuilt here
        logs.sort(key=lambda log: log.timestamp, reverse=True)

        if _is_set(level):
            logs = [log for log in logs if log.level == level]

        return logs[:limit]

    def get_service_facilities(self, service_id: int) -> List[str]:
        return sorted({log.facility for log in self.store.get(service_id)})
