"""Configuration settings for remote-e2e."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_RUN_TIMEOUT_S,
    DEFAULT_TUNNEL_DOMAIN,
    ENV_API_KEY,
    ENV_BASE_URL,
    ENV_POLL_INTERVAL,
    ENV_TIMEOUT,
    ENV_TUNNEL_DOMAIN,
    ENV_TUNNEL_TOKEN,
    ENV_VERBOSE,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    This uses Pydantic Settings for environment variable loading; a local
    ``.env`` file is read as well.
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    # API settings
    API_KEY: str = Field(default="", validation_alias=ENV_API_KEY)
    BASE_URL: str = Field(default=DEFAULT_BASE_URL, validation_alias=ENV_BASE_URL)

    # Tunnel settings
    TUNNEL_TOKEN: str = Field(default="", validation_alias=ENV_TUNNEL_TOKEN)
    TUNNEL_DOMAIN: str = Field(
        default=DEFAULT_TUNNEL_DOMAIN, validation_alias=ENV_TUNNEL_DOMAIN
    )

    # Polling settings (seconds)
    POLL_INTERVAL: float = Field(
        default=DEFAULT_POLL_INTERVAL_S, gt=0, validation_alias=ENV_POLL_INTERVAL
    )
    TIMEOUT: float = Field(
        default=DEFAULT_RUN_TIMEOUT_S, gt=0, validation_alias=ENV_TIMEOUT
    )

    # General settings
    VERBOSE: bool = Field(default=False, validation_alias=ENV_VERBOSE)


# Create a singleton settings instance
settings = Settings()
