import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from watts_happening.config import TestSettings, get_settings


@pytest.fixture(autouse=True)
def test_env():
    """Ensure we're using test settings."""
    with patch.dict(os.environ, {"ENV_NAME": "test"}):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path):
    return TestSettings(
        STRAVA_CLIENT_ID="client-id",
        STRAVA_CLIENT_SECRET="client-secret",
        STRAVA_REFRESH_TOKEN="refresh-token",
        STRAVA_API_BASE_URL="https://strava.test/api/v3",
        STRAVA_TOKEN_URL="https://strava.test/oauth/token",
        DATA_DIR=str(tmp_path / "data"),
        REQUEST_DELAY=0.0,
    )


@pytest.fixture
def mock_client():
    """Create a mock StravaClient."""
    client = MagicMock()
    client.refresh_access_token = AsyncMock(return_value="access-token")
    client.fetch_activities_page = AsyncMock(return_value=[])
    client.fetch_activity_streams = AsyncMock()
    return client
