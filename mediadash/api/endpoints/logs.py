"""
Log Collection API Endpoints

Control (start/stop collection), query, status and live stream endpoints
for the aggregated downstream service logs. All routes are mounted under
``{API_V1_STR}/logs``.
"""

import asyncio
import json
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from mediadash.background_services.log_fetcher import ServiceLogFetcher
from mediadash.background_services.profiles import get_profile
from mediadash.core.config import settings
from mediadash.core.dependencies import get_query_service, get_stream_broker, get_supervisor
from mediadash.core.logger import get_logger
from mediadash.schemas.logs import (
    AllLogsResponse,
    CollectionActionResponse,
    CollectionStatus,
    CollectionStatusResponse,
    CollectionTestResponse,
    FacilitiesResponse,
    LogEntryResponse,
    LogFilters,
    ServiceCollectionStatus,
    ServiceLogsResponse,
)
from mediadash.schemas.service import ServiceDescriptor
from mediadash.services.collection_supervisor import CollectionSupervisor
from mediadash.services.log_query import QueryService
from mediadash.services.stream_broker import StreamBroker

logger = get_logger(__name__)

router = APIRouter()

API_KEY_REQUIRED = "Service configuration with API key required"


def format_sse(event: Dict[str, Any]) -> str:
    """Encode one event as a Server-Sent Events data frame."""
    return f"data: {json.dumps(event)}\n\n"


@router.post("/start/{service_id}", response_model=CollectionActionResponse)
async def start_collection(
    service_id: int,
    service: ServiceDescriptor,
    supervisor: CollectionSupervisor = Depends(get_supervisor)
):
    """
    Start collecting logs from a service.

    Performs an immediate fetch; whether a recurring collection is also
    scheduled depends on the configured collection schedule. Repeated
    requests are accepted.
    """
    if not service.api_key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=API_KEY_REQUIRED)

    service = service.model_copy(update={"id": service_id})
    try:
        await supervisor.start_collecting(service)
    except Exception as e:
        logger.error(f"Failed to start log collection for {service.name}: {e}",
                     extra={'component': 'logs_api', 'service_id': service_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to start log collection: {str(e)}"
        )

    return CollectionActionResponse(
        message=f"Started log collection for {service.name}",
        serviceId=service_id
    )


@router.delete("/stop/{service_id}", response_model=CollectionActionResponse)
async def stop_collection(
    service_id: int,
    supervisor: CollectionSupervisor = Depends(get_supervisor)
):
    """Stop collecting logs from a service. Idempotent."""
    supervisor.stop_collecting(service_id)
    return CollectionActionResponse(
        message=f"Stopped log collection for service {service_id}",
        serviceId=service_id
    )


@router.get("/service/{service_id}", response_model=ServiceLogsResponse)
async def get_service_logs(
    service_id: int,
    facility: Optional[str] = None,
    level: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    query: QueryService = Depends(get_query_service)
):
    """Get cached logs of one service, optionally filtered by facility and level."""
    filters = LogFilters(facility=facility or "all", level=level or "all", limit=limit)
    logs = query.get_service_logs(service_id, facility=filters.facility, level=filters.level, limit=limit)
    return ServiceLogsResponse(
        serviceId=service_id,
        filters=filters,
        count=len(logs),
        logs=[LogEntryResponse.from_entry(log) for log in logs]
    )


@router.get("/all", response_model=AllLogsResponse)
async def get_all_logs(
    level: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    query: QueryService = Depends(get_query_service)
):
    """Get the newest logs across all services, optionally filtered by level."""
    filters = LogFilters(level=level or "all", limit=limit)
    logs = query.get_all_logs(level=filters.level, limit=limit)
    return AllLogsResponse(
        filters=filters,
        count=len(logs),
        logs=[LogEntryResponse.from_entry(log) for log in logs]
    )


@router.get("/facilities/{service_id}", response_model=FacilitiesResponse)
async def get_service_facilities(
    service_id: int,
    query: QueryService = Depends(get_query_service)
):
    """Get the facilities observed in a service's cached logs."""
    return FacilitiesResponse(
        serviceId=service_id,
        facilities=query.get_service_facilities(service_id)
    )


@router.get("/status", response_model=CollectionStatusResponse)
async def get_status(
    supervisor: CollectionSupervisor = Depends(get_supervisor),
    broker: StreamBroker = Depends(get_stream_broker)
):
    """Get log collection status and cache statistics."""
    status_data = supervisor.get_status()
    return CollectionStatusResponse(
        status=CollectionStatus(
            activeCollectors=status_data['active_collectors'],
            totalCachedLogs=status_data['total_cached_logs'],
            serviceStatus={
                service_id: ServiceCollectionStatus(
                    cached=service_status['cached'],
                    lastFetch=service_status['last_fetch']
                )
                for service_id, service_status in status_data['service_status'].items()
            },
            activeStreams=broker.active_sessions
        )
    )


@router.get("/stream")
async def get_log_stream(
    request: Request,
    service_id: Optional[int] = Query(None, alias="serviceId"),
    facility: Optional[str] = None,
    level: Optional[str] = None,
    broker: StreamBroker = Depends(get_stream_broker)
):
    """
    Live log stream (Server-Sent Events).

    Emits a ``connected`` event, then a ``logs`` (or ``error``) envelope every
    stream interval until the client disconnects.
    """
    async def event_stream():
        # The session is only opened once the body is being sent, so a client
        # that leaves before that never leaves a periodic task behind
        queue: asyncio.Queue = asyncio.Queue()
        session = await broker.connect(queue.put, service_id=service_id, facility=facility, level=level)
        try:
            while True:
                if await request.is_disconnected():
                    break
                event = await queue.get()
                yield format_sse(event)
        finally:
            await broker.disconnect(session.id)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"}
    )


@router.post("/test", response_model=CollectionTestResponse)
async def test_collection(service: ServiceDescriptor):
    """
    Run one collection against a service without touching the live caches.

    Useful to check connection details and the API key before starting
    collection for real.
    """
    if not service.api_key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=API_KEY_REQUIRED)

    profile = get_profile(service.type)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No log collection configuration for service type: {service.type}"
        )

    if service.id is None:
        service = service.model_copy(update={"id": 0})

    try:
        probe = CollectionSupervisor(fetcher=ServiceLogFetcher(timeout=settings.FETCH_TIMEOUT_SECONDS))
        result = await probe.collect_once(service)
        logs = QueryService(probe.store).get_service_logs(service.id, limit=10)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Log collection test failed: {str(e)}"
        )

    if result.ok:
        message = "Log collection test successful"
    else:
        message = f"Log collection test failed: {result.failure.value} error"

    return CollectionTestResponse(
        success=result.ok,
        message=message,
        sampleLogs=[LogEntryResponse.from_entry(log) for log in logs],
        availableFacilities=list(profile.known_facilities)
    )
