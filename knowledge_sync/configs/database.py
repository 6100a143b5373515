"""
Database configuration settings.

PostgreSQL connection parameters for the async engine that stores
documents, chunks, processing jobs and audit records. Variables use the
POSTGRES_ prefix (POSTGRES_HOST, POSTGRES_PASSWORD, ...).

Dependencies: pydantic, pydantic_settings
System role: Database connection configuration for ORM
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_sync.configs.base import BaseSettings


class DatabaseSettings(BaseSettings):
    """PostgreSQL (asyncpg) configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="POSTGRES_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL user")
    password: str = Field(default="postgres", description="PostgreSQL password")
    db: str = Field(default="knowledge_sync", description="PostgreSQL database name")
    ssl: bool = Field(default=False, description="Require TLS (managed Postgres)")

    pool_size: int = Field(default=10, gt=0, description="Persistent connections per process")
    max_overflow: int = Field(default=20, ge=0, description="Extra connections under burst load")
    pool_timeout: int = Field(default=30, gt=0, description="Seconds to wait for a pooled connection")
    pool_recycle_seconds: int = Field(
        default=1800, gt=0, description="Reconnect connections older than this"
    )
    statement_timeout_ms: int = Field(
        default=60000,
        ge=0,
        description="Server-side statement timeout; 0 disables it",
    )
    echo_sql: bool = Field(default=False, description="Echo SQL statements to logs")

    @property
    def async_database_url(self) -> str:
        """postgresql+asyncpg URL (asyncpg takes ssl as a query parameter)."""
        ssl_param = "?ssl=require" if self.ssl else ""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.db}{ssl_param}"
        )

    def server_settings(self, application_name: str) -> dict[str, str]:
        """Session parameters sent by asyncpg on every new connection."""
        settings = {"application_name": application_name}
        if self.statement_timeout_ms:
            settings["statement_timeout"] = str(self.statement_timeout_ms)
        return settings
