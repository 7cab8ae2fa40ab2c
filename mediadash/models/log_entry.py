from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

@dataclass
class LogEntry:
    id: str
    timestamp: datetime
    level: str
    facility: str
    service_id: int
    service_name: str
    service_type: str
    message: str
    exception: Optional[str] = None
    # Untouched source record, kept for diagnostic display only
    raw: Any = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'level': self.level,
            'facility': self.facility,
            'serviceId': self.service_id,
            'serviceName': self.service_name,
            'serviceType': self.service_type,
            'message': self.message,
            'exception': self.exception,
            'raw': self.raw,
        }
