import re
import time
import uuid
import requests
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from mediadash.background_services.profiles import ServiceTypeProfile
from mediadash.core.logger import get_logger
from mediadash.models.log_entry import LogEntry
from mediadash.schemas.service import ServiceDescriptor

logger = get_logger(__name__)

LEVEL_MAP = {
    'Fatal': 'CRITICAL',
    'Error': 'ERROR',
    'Warn': 'WARNING',
    'Info': 'INFO',
    'Debug': 'DEBUG',
    'Trace': 'TRACE',
}

NO_MESSAGE = 'No message'
DEFAULT_FACILITY = 'General'
UNKNOWN_LEVEL = 'UNKNOWN'

# .NET services emit up to 7 fractional digits; datetime accepts at most 6
_FRACTION_RE = re.compile(r'(\.\d{6})\d+')


class FetchFailure(str, Enum):
    AUTHENTICATION = "authentication"
    CONNECTIVITY = "connectivity"
    GENERIC = "generic"


@dataclass
class FetchResult:
    entries: List[LogEntry] = field(default_factory=list)
    failure: Optional[FetchFailure] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return self.failure is None


def map_log_level(level: Any) -> str:
    """Map a service-specific level name onto the normalized severity set."""
    if level is None or level == '':
        return UNKNOWN_LEVEL
    level = str(level)
    return LEVEL_MAP.get(level, level.upper())


def parse_timestamp(value: Any, default: datetime) -> datetime:
    """Parse an ISO 8601 source timestamp into an aware UTC datetime."""
    if not isinstance(value, str) or not value:
        return default
    text = _FRACTION_RE.sub(r'\1', value.strip())
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return default
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _as_text(value: Any) -> Optional[str]:
    # Queries and response models expect strings, whatever the source sent
    if value is None or value == '':
        return None
    return value if isinstance(value, str) else str(value)


def normalize_records(records: List[Any], service: ServiceDescriptor,
                      profile: ServiceTypeProfile, fetched_at: datetime) -> List[LogEntry]:
    """
    Convert raw downstream log records into normalized log entries.

    Args:
        records: Records from the ``records`` array of the log API response
        service: Service the records were fetched from
        profile: Log API profile of the service type
        fetched_at: Fetch instant, used for records without a usable time

    Returns:
        List[LogEntry]: One entry per dict record, in source order
    """
    entries = []
    for record in records:
        if not isinstance(record, dict):
            continue
        exception = _as_text(record.get('exception'))
        entry_id = record.get('id')
        if entry_id is None or entry_id == '':
            entry_id = f"{service.id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        entries.append(LogEntry(
            id=str(entry_id),
            timestamp=parse_timestamp(record.get('time'), fetched_at),
            level=map_log_level(record.get('level')),
            facility=_as_text(record.get(profile.facility_field)) or DEFAULT_FACILITY,
            service_id=service.id,
            service_name=service.name,
            service_type=service.type,
            message=_as_text(record.get('message')) or exception or NO_MESSAGE,
            exception=exception,
            raw=record,
        ))
    return entries


class ServiceLogFetcher:
    """
    Fetches one page of recent log records from a downstream service.

    Every failure is logged with its classification and resolves to an empty
    result; nothing is raised to the caller, so one unreachable service never
    affects collection of the others.
    """

    API_KEY_HEADER = "X-Api-Key"

    def __init__(self, timeout: float = 10):
        self.timeout = timeout

    def build_params(self, profile: ServiceTypeProfile, since: Optional[datetime] = None) -> Dict[str, Any]:
        params = {
            'pageSize': profile.page_size,
            'sortDirection': 'descending',
            'sortKey': 'time',
        }
        if since is not None:
            params['since'] = since.isoformat()
        return params

    def fetch(self, service: ServiceDescriptor, profile: ServiceTypeProfile,
              since: Optional[datetime] = None) -> FetchResult:
        """
        Fetch and normalize recent log records from a service.

        Args:
            service: Service to fetch from
            profile: Log API profile of the service type
            since: Watermark of the last successful fetch, if any

        Returns:
            FetchResult: Normalized entries, or no entries plus a failure classification
        """
        url = f"{service.base_url}{profile.endpoint_path}"
        headers = {self.API_KEY_HEADER: service.api_key or ''}
        params = self.build_params(profile, since)
        fetched_at = datetime.now(timezone.utc)
        log_extra = {
            'component': 'log_fetcher',
            'service_id': service.id,
            'service_type': service.type,
        }

        try:
            request_start_time = time.time()
            response = requests.get(url, params=params, headers=headers, timeout=self.timeout)
            response_time_ms = (time.time() - request_start_time) * 1000
            response.raise_for_status()
            payload = response.json()

            records = payload.get('records') if isinstance(payload, dict) else None
            if not isinstance(records, list):
                raise ValueError("response has no 'records' array")

            entries = normalize_records(records, service, profile, fetched_at)
            logger.info(
                f"Fetched {len(entries)} new log entries from {service.name}",
                extra={**log_extra, 'entry_count': len(entries), 'response_time_ms': response_time_ms}
            )
            return FetchResult(entries=entries, fetched_at=fetched_at)

        except requests.Timeout as e:
            logger.error(
                f"Log fetch timed out for {service.name} after {self.timeout}s: {e}",
                extra={**log_extra, 'failure_type': FetchFailure.GENERIC.value}
            )
            return FetchResult(failure=FetchFailure.GENERIC, fetched_at=fetched_at)

        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in (401, 403):
                logger.error(
                    f"Authentication failed for {service.name} - check API key",
                    extra={**log_extra, 'failure_type': FetchFailure.AUTHENTICATION.value,
                           'api_response_code': status_code}
                )
                return FetchResult(failure=FetchFailure.AUTHENTICATION, fetched_at=fetched_at)
            logger.error(
                f"Log fetch error for {service.name}: {e}",
                extra={**log_extra, 'failure_type': FetchFailure.GENERIC.value,
                       'api_response_code': status_code}
            )
            return FetchResult(failure=FetchFailure.GENERIC, fetched_at=fetched_at)

        except requests.ConnectionError as e:
            logger.error(
                f"Cannot connect to {service.name} at {service.host}:{service.port}",
                extra={**log_extra, 'failure_type': FetchFailure.CONNECTIVITY.value,
                       'error_details': str(e)}
            )
            return FetchResult(failure=FetchFailure.CONNECTIVITY, fetched_at=fetched_at)

        except Exception as e:
            logger.error(
                f"Log fetch error for {service.name}: {e}",
                extra={**log_extra, 'failure_type': FetchFailure.GENERIC.value}
            )
            return FetchResult(failure=FetchFailure.GENERIC, fetched_at=fetched_at)
