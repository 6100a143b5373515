"""
Shared test fixtures and configuration for entire test suite.

Provides: in-memory async database, pipeline settings, fake external
collaborators (object store, extractor, page decoder, embedding provider)
and a fully wired PipelineEngine built from them.
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import asyncio
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from knowledge_sync.boundary.db.base import Base
from knowledge_sync.boundary.db.CRUD import agent_crud
from knowledge_sync.configs import PipelineSettings, Settings
from knowledge_sync.core.exceptions import StorageError

EMBEDDING_DIMENSION = 8


class FakeObjectStore:
    """In-memory stand-in for S3DocumentClient."""

    def __init__(self, objects: dict[str, bytes] | None = None, fail_uploads: int = 0) -> None:
        self.objects = dict(objects or {})
        self.fail_uploads = fail_uploads
        self.upload_attempts: list[str] = []
        self.deleted: list[str] = []

    @property
    def bucket(self) -> str:
        return "test-bucket"

    def upload_bytes(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self.upload_attempts.append(key)
        if self.fail_uploads < 0 or len(self.upload_attempts) <= self.fail_uploads:
            raise StorageError("Failed to upload to S3: SlowDown", key)
        self.objects[key] = data
        return key

    def download_bytes(self, key: str) -> bytes:
        if key not in self.objects:
            raise StorageError(f"File not found in S3: {key}", key)
        return self.objects[key]

    def file_exists(self, key: str) -> bool:
        return key in self.objects

    def delete(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.pop(key, None)


class FakeExtractor:
    """Returns blob bytes decoded as text, or a configured error."""

    def __init__(self, error: str | None = None) -> None:
        self.error = error

    def extract(self, data: bytes, file_name: str) -> tuple[str, str | None]:
        if self.error:
            return "", self.error
        return data.decode("utf-8"), None


class FakePageDecoder:
    """Treats the blob as pages separated by form feeds."""

    def count_pages(self, data: bytes) -> int:
        return len(data.decode("utf-8").split("\f"))

    def extract_pages(self, data: bytes, page_start: int, page_end: int) -> bytes:
        pages = data.decode("utf-8").split("\f")
        return "\f".join(pages[page_start - 1:page_end]).encode("utf-8")


class FakeEmbeddingProvider:
    """Deterministic embeddings with optional failure or hang per text."""

    def __init__(
        self,
        dimension: int = EMBEDDING_DIMENSION,
        fail_on: str | None = None,
        hang: bool = False,
        vector_width: int | None = None,
    ) -> None:
        self.dimension = dimension
        self.fail_on = fail_on
        self.hang = hang
        self.vector_width = vector_width or dimension
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.hang:
            await asyncio.sleep(10)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError("429 Resource exhausted")
        return [float(len(text) % 7)] * self.vector_width


def make_text(length: int) -> str:
    """Deterministic text of exactly the given length."""
    alphabet = "abcdefghijklmnopqrstuvwxyz "
    return "".join(alphabet[i % len(alphabet)] for i in range(length))


@pytest.fixture
async def session_factory():
    """
    In-memory SQLite database shared by every session of one test.

    Yields:
        async_sessionmaker: Factory configured like production
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    """Async session for one test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    """Pipeline settings with no throttling and small, test-friendly windows."""
    return PipelineSettings(
        chunk_size=100,
        chunk_overlap=20,
        embedding_batch_size=20,
        embedding_delay_ms=0,
        max_retries=3,
        stuck_threshold_minutes=10,
        failed_recovery_cooldown_minutes=15,
        reconcile_batch_size=3,
        queue_batch_size=10,
        job_timeout_seconds=5,
        external_call_timeout_seconds=1,
        pages_per_batch=20,
        upload_max_attempts=3,
        upload_backoff_base_seconds=0,
        upload_backoff_jitter_seconds=0,
        assignment_batch_size=2,
    )


@pytest.fixture
def settings(pipeline_settings: PipelineSettings) -> Settings:
    """Application settings wrapping the test pipeline settings."""
    return Settings(pipeline=pipeline_settings)


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def engine(settings, session_factory, object_store, embedding_provider):
    """PipelineEngine wired to the test database and fakes."""
    from knowledge_sync.core.document_processing import PipelineEngine
    from knowledge_sync.workers import TaskDispatcher

    return PipelineEngine(
        settings=settings,
        session_factory=session_factory,
        object_store=object_store,
        embedding_provider=embedding_provider,
        extractor=FakeExtractor(),
        decoder=FakePageDecoder(),
        dispatcher=TaskDispatcher(),
    )


@pytest.fixture
async def agent(db_session):
    """A persisted agent."""
    created = await agent_crud.create(db_session, name="Support Agent")
    await db_session.commit()
    return created


@pytest.fixture
def document_id() -> uuid.UUID:
    """Generate a test document ID."""
    return uuid.uuid4()
