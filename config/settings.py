"""Configuration management using pydantic-settings."""
from typing import Literal

from pydantic import PositiveInt
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Cache settings are read by the services on every call (see
    refcache.cache.policy.SettingsCachePolicy), so assigning a new value at
    runtime takes effect on the next read.
    """

    # Database
    database_url: str = "sqlite:///./refcache.db"
    database_echo: bool = False

    # Cache settings
    cache_ttl_seconds: PositiveInt = 600
    cache_loading_mode: Literal["eager", "lazy"] = "eager"
    cache_debug: bool = False

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        validate_assignment = True


settings = Settings()
