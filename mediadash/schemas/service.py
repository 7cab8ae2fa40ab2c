from typing import Optional
from pydantic import BaseModel, Field


class ServiceDescriptor(BaseModel):
    """Connection details of a monitored service, as held by the service registry."""
    id: Optional[int] = Field(None, description="Service ID")
    name: str = Field(..., min_length=1, description="Display name of the service")
    type: str = Field(..., min_length=1, description="Service type, e.g. radarr or sonarr")
    host: str = Field(..., min_length=1, description="Hostname or IP address")
    port: int = Field(..., ge=1, le=65535, description="TCP port of the service API")
    ssl: bool = Field(False, description="Connect over HTTPS")
    api_key: Optional[str] = Field(None, description="API key sent in the X-Api-Key header")
    enabled: bool = Field(True, description="Whether the service is enabled in the registry")

    @property
    def base_url(self) -> str:
        protocol = 'https' if self.ssl else 'http'
        return f"{protocol}://{self.host}:{self.port}"
