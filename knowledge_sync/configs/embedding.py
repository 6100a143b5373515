"""
Embedding provider configuration.

Dependencies: pydantic_settings
System role: Embedding model selection and vector width
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Google Gemini embedding settings."""

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
    )

    model: str = Field(
        default="models/gemini-embedding-001",
        description="Google Gemini embedding model ID (gemini-embedding-001 supports 1024-dim)",
    )
    dimension: int = Field(
        default=1024,
        description="Expected embedding vector width; mismatches fail the chunk",
    )
    google_api_key: str | None = Field(
        default=None,
        description="Google API key (falls back to GOOGLE_API_KEY in the environment)",
    )
    task_type: str = Field(
        default="RETRIEVAL_DOCUMENT",
        description="Gemini task type used when embedding chunk content",
    )
