"""
Shared settings base.

Every config module inherits from BaseSettings so that all of them read
the same .env file with the same rules. Fields here are the ones the
whole service needs regardless of which component is running.

Dependencies: pydantic_settings
System role: Root of the configuration hierarchy
"""

from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict


class BaseSettings(PydanticBaseSettings):
    """Common settings read from the environment or .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(
        default="knowledge-sync",
        description="Reported in logs and as the database application_name",
    )
    environment: str = Field(
        default="development",
        description="Deployment stage (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for configure_logging()",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"
