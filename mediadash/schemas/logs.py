from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from mediadash.models.log_entry import LogEntry


class LogEntryResponse(BaseModel):
    """Normalized log entry as returned by the API."""
    id: str = Field(..., description="Source entry ID, or a generated composite key")
    timestamp: datetime = Field(..., description="Time the entry was logged")
    level: str = Field(..., description="Normalized severity, e.g. ERROR or WARNING")
    facility: str = Field(..., description="Service-defined log category")
    serviceId: int = Field(..., description="ID of the service the entry came from")
    serviceName: str = Field(..., description="Display name of the service")
    serviceType: str = Field(..., description="Type of the service")
    message: str = Field(..., description="Log message")
    exception: Optional[str] = Field(None, description="Exception text, if any")
    raw: Any = Field(None, description="Untouched source record")

    @classmethod
    def from_entry(cls, entry: LogEntry) -> "LogEntryResponse":
        return cls(
            id=entry.id,
            timestamp=entry.timestamp,
            level=entry.level,
            facility=entry.facility,
            serviceId=entry.service_id,
            serviceName=entry.service_name,
            serviceType=entry.service_type,
            message=entry.message,
            exception=entry.exception,
            raw=entry.raw,
        )


class LogFilters(BaseModel):
    facility: Optional[str] = None
    level: str = "all"
    limit: int = 100


class CollectionActionResponse(BaseModel):
    """Response for start/stop collection requests."""
    success: bool = True
    message: str
    serviceId: int


class ServiceLogsResponse(BaseModel):
    success: bool = True
    serviceId: int
    filters: LogFilters
    count: int
    logs: List[LogEntryResponse]


class AllLogsResponse(BaseModel):
    success: bool = True
    filters: LogFilters
    count: int
    logs: List[LogEntryResponse]


class FacilitiesResponse(BaseModel):
    success: bool = True
    serviceId: int
    facilities: List[str]


class ServiceCollectionStatus(BaseModel):
    cached: int = Field(..., description="Number of cached entries")
    lastFetch: Optional[datetime] = Field(None, description="Watermark of the last successful fetch")


class CollectionStatus(BaseModel):
    activeCollectors: int = Field(..., description="Number of services with a recurring collection")
    totalCachedLogs: int = Field(..., description="Cached entries across all services")
    serviceStatus: Dict[int, ServiceCollectionStatus] = Field(default_factory=dict)
    activeStreams: int = Field(0, description="Open live stream sessions")


class CollectionStatusResponse(BaseModel):
    success: bool = True
    status: CollectionStatus


class CollectionTestResponse(BaseModel):
    success: bool = True
    message: str
    sampleLogs: List[LogEntryResponse]
    availableFacilities: List[str]
