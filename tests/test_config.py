import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from mediadash.core.config import Settings


class TestDefaults:

    def test_collection_defaults(self):
        settings = Settings()
        assert settings.LOG_CACHE_CAPACITY == 500
        assert settings.FETCH_TIMEOUT_SECONDS == 10
        assert settings.COLLECTION_SCHEDULE == "immediate"
        assert settings.STREAM_INTERVAL_SECONDS == 5
        assert settings.STREAM_QUERY_LIMIT == 50
        assert settings.STREAM_BATCH_SIZE == 10
        assert settings.API_V1_STR == "/api/v1"


class TestCorsOrigins:

    def test_json_array(self):
        settings = Settings(BACKEND_CORS_ORIGINS='["http://localhost:3000", "http://dash.local"]')
        assert settings.BACKEND_CORS_ORIGINS == ["http://localhost:3000", "http://dash.local"]

    def test_comma_separated(self):
        settings = Settings(BACKEND_CORS_ORIGINS="http://localhost:3000, http://dash.local")
        assert settings.BACKEND_CORS_ORIGINS == ["http://localhost:3000", "http://dash.local"]


class TestCollectionSettings:

    def test_schedule_is_normalized(self):
        assert Settings(COLLECTION_SCHEDULE=" Interval ").COLLECTION_SCHEDULE == "interval"

    def test_unknown_schedule_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(COLLECTION_SCHEDULE="hourly")

    @pytest.mark.parametrize("field", ["LOG_CACHE_CAPACITY", "STREAM_INTERVAL_SECONDS", "STREAM_BATCH_SIZE"])
    def test_non_positive_values_are_rejected(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    @patch.dict(os.environ, {"LOG_CACHE_CAPACITY": "250  # per service", "COLLECTION_INTERVAL_SECONDS": "30"})
    def test_env_values_with_comments(self):
        settings = Settings()
        assert settings.LOG_CACHE_CAPACITY == 250
        assert settings.COLLECTION_INTERVAL_SECONDS == 30

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_live_event_probability_range(self, value):
        with pytest.raises(ValidationError):
            Settings(LIVE_EVENT_PROBABILITY=value)

    @patch.dict(os.environ, {"MONITORED_SERVICES": '[{"id": 1, "name": "Radarr", "type": "radarr", '
                                                   '"host": "radarr", "port": 7878, "api_key": "k"}]'})
    def test_monitored_services_from_env(self):
        settings = Settings()
        assert settings.MONITORED_SERVICES[0]["type"] == "radarr"
