"""
Log Collection Supervisor

Owns the per-service collection state (cache, fetch watermarks and the
registry of recurring collection tasks) and drives fetch-and-merge cycles.

Recurring polling is pluggable through a CollectionSchedule:
- ImmediateOnlySchedule: one fetch per start request, nothing is registered
- IntervalSchedule: one immediate fetch, then a fetch every interval

Immediate-only is the default; polling every service on a timer overloaded
the downstream APIs and stalled their stats endpoints.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from mediadash.background_services.log_fetcher import FetchResult, ServiceLogFetcher
from mediadash.background_services.profiles import get_profile
from mediadash.core.logger import get_logger
from mediadash.schemas.service import ServiceDescriptor
from mediadash.services.log_store import LogStore

logger = get_logger(__name__)


class CollectorState(str, Enum):
    NOT_COLLECTING = "not_collecting"
    COLLECTING = "collecting"


@dataclass
class CollectionState:
    """Mutable collection state owned by a single supervisor."""
    store: LogStore = field(default_factory=LogStore)
    watermarks: Dict[int, datetime] = field(default_factory=dict)
    registry: Dict[int, asyncio.Task] = field(default_factory=dict)


class CollectionSchedule:
    """Decides whether a service gets a recurring collection after its first fetch."""

    def schedule(self, service: ServiceDescriptor,
                 collect: Callable[[], Awaitable[Any]]) -> Optional[asyncio.Task]:
        raise NotImplementedError


class ImmediateOnlySchedule(CollectionSchedule):
    def schedule(self, service, collect):
        logger.info(
            f"Recurring log collection disabled for {service.name} - immediate fetch only",
            extra={'component': 'collection_supervisor', 'service_id': service.id}
        )
        return None


class IntervalSchedule(CollectionSchedule):
    def __init__(self, interval_seconds: float = 60):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got: {interval_seconds}")
        self.interval_seconds = interval_seconds

    def schedule(self, service, collect):
        async def run():
            while True:
                await asyncio.sleep(self.interval_seconds)
                try:
                    await collect()
                except Exception as e:
                    logger.error(
                        f"Log collection failed for {service.name}: {e}",
                        extra={'component': 'collection_supervisor', 'service_id': service.id}
                    )

        return asyncio.get_running_loop().create_task(run(), name=f"log-collection-{service.id}")


def build_schedule(mode: str, interval_seconds: float = 60) -> CollectionSchedule:
    if mode == "interval":
        return IntervalSchedule(interval_seconds)
    if mode == "immediate":
        return ImmediateOnlySchedule()
    raise ValueError(f"Unknown collection schedule: {mode}")


class CollectionSupervisor:
    """Starts, stops and reports log collection for monitored services."""

    def __init__(self, fetcher: Optional[ServiceLogFetcher] = None,
                 schedule: Optional[CollectionSchedule] = None,
                 state: Optional[CollectionState] = None):
        self.fetcher = fetcher or ServiceLogFetcher()
        self.schedule = schedule or ImmediateOnlySchedule()
        self.state = state or CollectionState()

    @property
    def store(self) -> LogStore:
        return self.state.store

    def status_of(self, service_id: int) -> CollectorState:
        if service_id in self.state.registry:
            return CollectorState.COLLECTING
        return CollectorState.NOT_COLLECTING

    async def collect_once(self, service: ServiceDescriptor) -> Optional[FetchResult]:
        """
        Fetch new entries for a service and merge them into its cache.

        The fetch runs in a worker thread; the merge and watermark update run
        on the event loop without suspending.

        Returns:
            FetchResult or None when the service type has no log profile
        """
        profile = get_profile(service.type)
        if profile is None:
            logger.info(
                f"No log collection configuration for service type: {service.type}",
                extra={'component': 'collection_supervisor', 'service_id': service.id}
            )
            return None

        since = self.state.watermarks.get(service.id)
        result = await asyncio.to_thread(self.fetcher.fetch, service, profile, since)
        if result.ok:
            self.store.merge(service.id, result.entries)
            if since is None or result.fetched_at > since:
                self.state.watermarks[service.id] = result.fetched_at
        return result

    async def start_collecting(self, service: ServiceDescriptor) -> None:
        if self.status_of(service.id) == CollectorState.COLLECTING:
            return

        if get_profile(service.type) is None:
            logger.info(
                f"No log collection configuration for service type: {service.type}",
                extra={'component': 'collection_supervisor', 'service_id': service.id}
            )
            return

        logger.info(
            f"Starting log collection for {service.name} ({service.type})",
            extra={'component': 'collection_supervisor', 'service_id': service.id}
        )
        await self.collect_once(service)

        # Another start for the same service may have registered while we fetched
        if self.status_of(service.id) == CollectorState.COLLECTING:
            return
        handle = self.schedule.schedule(service, lambda: self.collect_once(service))
        if handle is not None:
            self.state.registry[service.id] = handle

    def stop_collecting(self, service_id: int) -> bool:
        handle = self.state.registry.pop(service_id, None)
        if handle is None:
            return False
        handle.cancel()
        logger.info(
            f"Stopped log collection for service {service_id}",
            extra={'component': 'collection_supervisor', 'service_id': service_id}
        )
        return True

    async def start_collecting_all(self, services: Iterable[ServiceDescriptor]) -> None:
        services = list(services)
        logger.info(
            f"Starting log collection for {len(services)} services",
            extra={'component': 'collection_supervisor'}
        )
        for service in services:
            if not (service.enabled and service.api_key) or service.id is None:
                continue
            try:
                await self.start_collecting(service)
            except Exception as e:
                logger.error(
                    f"Log collection failed to start for {service.name}: {e}",
                    extra={'component': 'collection_supervisor', 'service_id': service.id}
                )

    def get_status(self) -> Dict[str, Any]:
        status = {
            'active_collectors': len(self.state.registry),
            'total_cached_logs': 0,
            'service_status': {},
        }
        for service_id, entries in self.store.snapshot().items():
            status['total_cached_logs'] += len(entries)
            status['service_status'][service_id] = {
                'cached': len(entries),
                'last_fetch': self.state.watermarks.get(service_id),
            }
        return status

    def shutdown(self) -> None:
        for service_id in list(self.state.registry):
            self.stop_collecting(service_id)
