from mediadash.schemas.service import ServiceDescriptor
from mediadash.schemas.logs import (
    LogEntryResponse,
    LogFilters,
    CollectionActionResponse,
    ServiceLogsResponse,
    AllLogsResponse,
    FacilitiesResponse,
    ServiceCollectionStatus,
    CollectionStatus,
    CollectionStatusResponse,
    CollectionTestResponse
)

__all__ = [
    "ServiceDescriptor",
    "LogEntryResponse",
    "LogFilters",
    "CollectionActionResponse",
    "ServiceLogsResponse",
    "AllLogsResponse",
    "FacilitiesResponse",
    "ServiceCollectionStatus",
    "CollectionStatus",
    "CollectionStatusResponse",
    "CollectionTestResponse"
]
