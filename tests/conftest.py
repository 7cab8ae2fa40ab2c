import pytest
from fastapi.testclient import TestClient

from mediadash.core.config import Settings
from mediadash.main import create_application
from mediadash.schemas.service import ServiceDescriptor
from mediadash.services.log_store import LogStore
from tests.helpers import FakeFetcher


@pytest.fixture
def radarr_service():
    return ServiceDescriptor(
        id=1, name="Radarr", type="radarr", host="radarr.local", port=7878, api_key="radarr-key"
    )


@pytest.fixture
def sonarr_service():
    return ServiceDescriptor(
        id=2, name="Sonarr", type="sonarr", host="sonarr.local", port=8989, api_key="sonarr-key"
    )


@pytest.fixture
def store():
    return LogStore()


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def test_settings():
    """Settings without demo data so responses reflect only collected logs."""
    return Settings(DEMO_DATA_ENABLED=False, MONITORED_SERVICES=[], STREAM_INTERVAL_SECONDS=1)


@pytest.fixture
def client(test_settings):
    """Test client with the application lifespan running."""
    app = create_application(test_settings)
    with TestClient(app) as test_client:
        yield test_client
