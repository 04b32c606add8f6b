"""
Configuration settings for mongobuilder.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..filters.lookup_filters import DEFAULT_LOOKUP_ALIAS


class Settings(BaseSettings):
    """mongobuilder configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MONGOBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Date handling
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used for date boundaries (UTC, Europe/Berlin, ...)",
    )

    # Regex matches
    regex_options: str = Field(
        default="i",
        description="Default $options for regex matches (i = case-insensitive)",
    )

    # Lookups
    lookup_alias: str = Field(
        default=DEFAULT_LOOKUP_ALIAS,
        min_length=1,
        description="Default 'as' name for loose $lookup stages",
    )

    # Soft delete
    soft_delete_field: str = Field(
        default="deletedAt",
        min_length=1,
        description="Field checked for null by add_not_deleted",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
