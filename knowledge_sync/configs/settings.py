"""
Unified application settings.

Groups the per-concern settings (database, pipeline tuning, embedding
provider, object store) under one object. Components receive the group
they need rather than the whole Settings.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from knowledge_sync.configs.base import BaseSettings
from knowledge_sync.configs.database import DatabaseSettings
from knowledge_sync.configs.embedding import EmbeddingSettings
from knowledge_sync.configs.pipeline import PipelineSettings
from knowledge_sync.configs.s3_documents import S3DocumentsSettings


class Settings(BaseSettings):
    """Every settings group plus the HTTP surface options."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    s3_documents: S3DocumentsSettings = Field(default_factory=S3DocumentsSettings)

    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API",
    )
    shutdown_grace_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How long shutdown waits for background tasks before cancelling them",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Settings singleton, read from the environment once per process.

    Usage:
        from knowledge_sync.configs import get_settings
        pipeline = get_settings().pipeline
    """
    return Settings()
