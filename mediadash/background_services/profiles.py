"""
Log API profiles for the supported downstream service types.

Each *arr-style service exposes a paged log endpoint with the same query
parameters; they differ in endpoint path and in the record field that names
the logging facility.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class ServiceTypeProfile:
    endpoint_path: str
    page_size: int
    facility_field: str
    known_facilities: Tuple[str, ...] = ()


SERVICE_PROFILES: Dict[str, ServiceTypeProfile] = {
    'radarr': ServiceTypeProfile(
        endpoint_path='/api/v3/log',
        page_size=100,
        facility_field='logger',
        known_facilities=('Api', 'Indexer', 'Download', 'Import', 'Health', 'Auth'),
    ),
    'sonarr': ServiceTypeProfile(
        endpoint_path='/api/v3/log',
        page_size=100,
        facility_field='logger',
        known_facilities=('Api', 'Episode', 'Series', 'RSS', 'Download', 'Import'),
    ),
    'prowlarr': ServiceTypeProfile(
        endpoint_path='/api/v1/log',
        page_size=100,
        facility_field='logger',
        known_facilities=('Api', 'Indexer', 'Download', 'Health'),
    ),
    'lidarr': ServiceTypeProfile(
        endpoint_path='/api/v1/log',
        page_size=100,
        facility_field='logger',
        known_facilities=('Api', 'Album', 'Artist', 'Download', 'Import'),
    ),
    'bazarr': ServiceTypeProfile(
        endpoint_path='/api/system/logs',
        page_size=100,
        facility_field='module',
        known_facilities=('General', 'Subliminal', 'Sonarr', 'Radarr'),
    ),
}


def get_profile(service_type: Optional[str]) -> Optional[ServiceTypeProfile]:
    """Return the log API profile for a service type, or None if unsupported."""
    if not service_type:
        return None
    return SERVICE_PROFILES.get(service_type.lower())
