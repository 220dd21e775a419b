from functools import lru_cache
import os
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from watts_happening.errors import ConfigError

REQUIRED_CREDENTIALS = (
    "STRAVA_CLIENT_ID",
    "STRAVA_CLIENT_SECRET",
    "STRAVA_REFRESH_TOKEN",
)


class Settings(BaseSettings):
    STRAVA_CLIENT_ID: Optional[str] = None
    STRAVA_CLIENT_SECRET: Optional[str] = None
    STRAVA_REFRESH_TOKEN: Optional[str] = None
    STRAVA_API_BASE_URL: str = "https://www.strava.com/api/v3"
    STRAVA_TOKEN_URL: str = "https://www.strava.com/oauth/token"
    DATA_DIR: str = "data"
    TARGET_SPORT_TYPE: str = "VirtualRide"
    PER_PAGE: int = 50
    MAX_PAGES: int = 5
    REQUEST_DELAY: float = 0.5  # seconds between stream requests
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(".env", f".env.{os.getenv('ENV_NAME', 'development')}"),
        env_file_encoding="utf-8",
        extra="allow",
    )

    def strava_credentials(self) -> tuple[str, str, str]:
        """Return (client_id, client_secret, refresh_token).

        Raises:
            ConfigError: if any of the three is unset or empty.
        """
        missing = [name for name in REQUIRED_CREDENTIALS if not getattr(self, name)]
        if missing:
            raise ConfigError(
                f"Missing Strava credentials: {', '.join(missing)}. "
                "Set them in the environment or in a .env file."
            )
        return self.STRAVA_CLIENT_ID, self.STRAVA_CLIENT_SECRET, self.STRAVA_REFRESH_TOKEN


class DevelopmentSettings(Settings):
    LOG_LEVEL: str = "DEBUG"


class ProductionSettings(Settings):
    LOG_LEVEL: str = "INFO"


class TestSettings(Settings):
    DATA_DIR: str = "test-data"
    REQUEST_DELAY: float = 0.0
    LOG_LEVEL: str = "DEBUG"


ENV_SETTINGS_MAP = {
    "development": DevelopmentSettings,
    "production": ProductionSettings,
    "test": TestSettings,
}


@lru_cache
def get_settings() -> Settings:
    env_name = os.getenv("ENV_NAME", "development")
    settings_class = ENV_SETTINGS_MAP.get(env_name, Settings)
    return settings_class()
