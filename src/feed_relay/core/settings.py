"""Application settings and configuration.

This module defines all configuration options for the Feed Relay core.
Settings are loaded from environment variables with sensible defaults.
"""

import math

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ASYNC_DRIVERS = (
    ("sqlite://", "sqlite+aiosqlite://"),
    ("postgresql://", "postgresql+psycopg://"),
)


def minutes_to_seconds(minutes: float) -> int:
    """Convert a positive interval in minutes to whole seconds, never below one."""
    return max(1, math.ceil(round(minutes * 60, 6)))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Feed Relay", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./feed_relay.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Discord API access
    discord_api_base_url: str = Field(
        default="https://discord.com/api/v10",
        alias="DISCORD_API_BASE_URL",
    )
    discord_bot_token: str | None = Field(default=None, alias="DISCORD_BOT_TOKEN")
    discord_http_timeout_seconds: float = Field(
        default=10.0,
        alias="DISCORD_HTTP_TIMEOUT_SECONDS",
    )

    # Feed status and scheduling
    default_refresh_rate_minutes: float = Field(
        default=10.0,
        gt=0,
        alias="DEFAULT_REFRESH_RATE_MINUTES",
    )
    feed_failure_threshold_hours: int = Field(
        default=18,
        gt=0,
        alias="FEED_FAILURE_THRESHOLD_HOURS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def async_database_url(self) -> str:
        """Return the effective URL with an asyncio driver selected.

        Plain ``sqlite://`` and ``postgresql://`` URLs are mapped to aiosqlite
        and psycopg; URLs that already name a driver are returned unchanged.
        """
        url = self.effective_database_url
        for plain, driver in _ASYNC_DRIVERS:
            if url.startswith(plain):
                return driver + url[len(plain):]
        return url

    @property
    def default_refresh_rate_seconds(self) -> int:
        """Return the fallback feed refresh interval in whole seconds, rounded up."""
        return minutes_to_seconds(self.default_refresh_rate_minutes)


settings = Settings()
