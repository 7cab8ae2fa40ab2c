"""
Demo data decorators.

These keep the dashboard populated before any service has been collected.
They wrap the query and stream paths at the boundary so the core filtering
and stream logic stay deterministic.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from mediadash.models.log_entry import LogEntry
from mediadash.services.log_query import QueryService

DEMO_SERVICES = ['Radarr', 'Sonarr', 'Prowlarr', 'Plex']
DEMO_LEVELS = ['INFO', 'WARNING', 'ERROR', 'DEBUG']
DEMO_FACILITIES = ['Api', 'Download', 'Import', 'Health', 'RSS']
DEMO_MESSAGES = [
    'Successfully downloaded movie: The Matrix (1999)',
    'Indexer search completed for Breaking Bad S01E01',
    'Health check passed for all services',
    'API request processed successfully',
    'Import completed: 3 files processed',
    'Warning: Disk space running low (15% remaining)',
    'Error connecting to download client',
    'RSS sync completed - 12 new releases found',
    'Movie quality upgraded: 720p -> 1080p',
    'Series monitoring started for new show',
]
LIVE_LEVELS = ['INFO', 'WARNING', 'ERROR']
LIVE_SERVICE_ID = 999


class DemoLogFactory:
    """Synthesizes plausible log entries spread over the last hour."""

    def __init__(self, count: int = 25, rng: Optional[random.Random] = None):
        self.count = count
        self.rng = rng or random.Random()

    def generate(self) -> List[LogEntry]:
        now = datetime.now(timezone.utc)
        entries = []
        for i in range(self.count):
            service = self.rng.choice(DEMO_SERVICES)
            entries.append(LogEntry(
                id=f"demo-{i}",
                timestamp=now - timedelta(seconds=self.rng.uniform(0, 3600)),
                level=self.rng.choice(DEMO_LEVELS),
                facility=self.rng.choice(DEMO_FACILITIES),
                service_id=self.rng.randint(6, 9),
                service_name=service,
                service_type=service.lower(),
                message=self.rng.choice(DEMO_MESSAGES),
                exception='System.Exception: Sample error details here' if self.rng.random() > 0.9 else None,
            ))
        entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return entries


class DemoLogFallback:
    """Substitutes demo entries for an empty result."""

    def __init__(self, factory: Optional[DemoLogFactory] = None):
        self.factory = factory or DemoLogFactory()

    def __call__(self, logs: List[LogEntry]) -> List[LogEntry]:
        if logs:
            return logs
        return self.factory.generate()


class DemoQueryService:
    """QueryService decorator that falls back to demo data when nothing is cached."""

    def __init__(self, query: QueryService, fallback: Optional[DemoLogFallback] = None):
        self.query = query
        self.fallback = fallback or DemoLogFallback()

    def get_service_logs(self, service_id, facility=None, level=None, limit=100):
        return self.query.get_service_logs(service_id, facility=facility, level=level, limit=limit)

    def get_all_logs(self, level=None, limit=100):
        return self.fallback(self.query.get_all_logs(level=level, limit=limit))[:limit]

    def get_service_facilities(self, service_id):
        return self.query.get_service_facilities(service_id) or list(DEMO_FACILITIES)


class LiveEntryInjector:
    """Occasionally prepends a synthetic "live" entry so the stream visibly moves."""

    def __init__(self, probability: float = 0.3, rng: Optional[random.Random] = None):
        self.probability = probability
        self.rng = rng or random.Random()

    def make_entry(self) -> LogEntry:
        now = datetime.now(timezone.utc)
        return LogEntry(
            id=f"live-{int(now.timestamp() * 1000)}",
            timestamp=now,
            level=self.rng.choice(LIVE_LEVELS),
            facility='Api',
            service_id=LIVE_SERVICE_ID,
            service_name='Live Demo',
            service_type='demo',
            message='Live streaming test - New log entry generated',
        )

    def __call__(self, logs: List[LogEntry]) -> List[LogEntry]:
        if self.rng.random() < self.probability:
            return [self.make_entry()] + list(logs)
        return logs
