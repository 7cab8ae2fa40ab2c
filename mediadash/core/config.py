from typing import Any, Dict, List, Union
from pydantic_settings import BaseSettings
from pydantic import field_validator
import json

class Settings(BaseSettings):
    PROJECT_NAME: str = "Media Ops Dashboard"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"

    # Server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3001

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str):
            if v.startswith("[") and v.endswith("]"):
                # Parse JSON array string
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    # Fallback to treating as comma-separated
                    return [i.strip() for i in v.split(",")]
            else:
                # Comma-separated string
                return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Log collection
    LOG_CACHE_CAPACITY: int = 500
    FETCH_TIMEOUT_SECONDS: int = 10
    # "immediate" fetches once per start request; "interval" also polls every
    # COLLECTION_INTERVAL_SECONDS. Polling stays off until downstream load is
    # throttled.
    COLLECTION_SCHEDULE: str = "immediate"
    COLLECTION_INTERVAL_SECONDS: int = 60
    # Services collected at startup, as a JSON list of service descriptors
    MONITORED_SERVICES: List[Dict[str, Any]] = []

    @field_validator("COLLECTION_SCHEDULE", mode="before")
    def validate_schedule(cls, v: str) -> str:
        value = str(v).strip().lower()
        if value not in ("immediate", "interval"):
            raise ValueError(f"COLLECTION_SCHEDULE must be 'immediate' or 'interval', got: {v}")
        return value

    # Live stream
    STREAM_INTERVAL_SECONDS: int = 5
    STREAM_QUERY_LIMIT: int = 50
    STREAM_BATCH_SIZE: int = 10

    # Demo data shown while nothing has been collected yet
    DEMO_DATA_ENABLED: bool = True
    LIVE_EVENT_PROBABILITY: float = 0.3

    @field_validator(
        "LOG_CACHE_CAPACITY", "FETCH_TIMEOUT_SECONDS", "COLLECTION_INTERVAL_SECONDS",
        "STREAM_INTERVAL_SECONDS", "STREAM_QUERY_LIMIT", "STREAM_BATCH_SIZE",
        mode="before"
    )
    def validate_positive_integers(cls, v):
        """Validate collection and stream settings as positive integers."""
        if isinstance(v, str):
            # Handle comments in env values (e.g., "60  # seconds")
            value = v.split('#')[0].strip()
            parsed = int(value)
        else:
            parsed = int(v)

        if parsed <= 0:
            raise ValueError(f"Collection and stream settings must be positive integers, got: {parsed}")
        return parsed

    @field_validator("LIVE_EVENT_PROBABILITY", mode="before")
    def validate_probability(cls, v):
        if isinstance(v, str):
            v = v.split('#')[0].strip()
        parsed = float(v)
        if not 0.0 <= parsed <= 1.0:
            raise ValueError(f"LIVE_EVENT_PROBABILITY must be between 0 and 1, got: {parsed}")
        return parsed

    # Logging Configuration
    LOG_DIR: str = "./logs"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    LOG_ROTATION_SIZE: int = 10485760  # 10MB
    LOG_BACKUP_COUNT: int = 5

    @field_validator("LOG_ROTATION_SIZE", "LOG_BACKUP_COUNT", mode="before")
    def validate_integers(cls, v):
        if isinstance(v, str):
            # Handle comments in env values (e.g., "10485760  # 10MB")
            value = v.split('#')[0].strip()
            return int(value)
        return v

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "allow"

settings = Settings()
