"""
Shared pytest fixtures and configuration
"""
import os

# Must be set before the app (and its engine) is imported
os.environ.setdefault("MODE", "development")
os.environ.setdefault("STAGING_DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PUBLIC_MEDIA_BASE_URL", "https://media.test/public/")

import pytest
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional, Tuple
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app import config
from app.main import app
from app.dependencies import get_db, get_toolkit
from app.apps.publish import models  # noqa: F401
from app.apps.common.association_tables import content_tags  # noqa: F401
from app.apps.publish.context import PublishContext
from app.apps.publish.services.media_tools import MediaToolkit, video_mime_type


# In-memory SQLite database for testing
# Note: aiosqlite must be installed for async SQLite support
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MEDIA_BASE_URL = "https://media.test/public/"
CONTENT_BASE_URL = "https://content.test"


class FakeStorage:
    """Records uploads instead of talking to the bucket"""

    def __init__(self):
        self.uploads = []
        self.fail_prefixes = []

    def upload_file(self, local_path, remote_key, content_type="application/octet-stream"):
        if any(remote_key.startswith(prefix) for prefix in self.fail_prefixes):
            return {"success": False, "error": "bucket unavailable"}
        self.uploads.append((str(local_path), remote_key, content_type))
        return {"success": True, "url": f"https://bucket.test/{remote_key}"}

    @property
    def uploaded_keys(self):
        return [remote_key for _, remote_key, _ in self.uploads]


class FakeToolkit(MediaToolkit):
    """Real Pillow probing, fake bucket and a fixed video duration (no ffprobe needed)"""

    def __init__(self, storage: FakeStorage, video_duration: int = 12):
        super().__init__(storage=storage)
        self.video_duration = video_duration

    def probe_video(self, path):
        return self.video_duration, video_mime_type(path)


def write_image(path: Path, size: Tuple[int, int] = (40, 30), color: str = "red") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


@pytest.fixture(autouse=True)
def publish_roots(tmp_path, monkeypatch) -> Dict[str, Path]:
    """
    Point storage, staging and public URLs at the test's temp directory.
    Content built by make_content lives outside the staging root unless asked otherwise.
    """
    storage_root = tmp_path / "storage"
    staging_root = tmp_path / "staging"
    staging_root.mkdir()
    monkeypatch.setattr(config, "STORAGE_ROOT", str(storage_root))
    monkeypatch.setattr(config, "STAGING_ROOT", str(staging_root))
    monkeypatch.setattr(config, "CONTENT_BASE_URL", CONTENT_BASE_URL)
    monkeypatch.setattr(config, "CONTENT_FILE_POLICY", "upsert")
    monkeypatch.setenv("PUBLIC_MEDIA_BASE_URL", MEDIA_BASE_URL)
    return {"storage": storage_root, "staging": staging_root, "incoming": tmp_path / "incoming"}


@pytest.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session for each test.
    Every test gets a fresh in-memory database.
    """
    TestSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with TestSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def toolkit(storage) -> FakeToolkit:
    return FakeToolkit(storage)


@pytest.fixture
def make_content(publish_roots):
    """
    Build a content directory.

    files maps relative paths to text, images maps relative paths to (width, height),
    binaries maps relative paths to raw bytes.
    """
    def _make(
        name: str,
        metadata: Dict[str, str],
        files: Optional[Dict[str, str]] = None,
        images: Optional[Dict[str, Tuple[int, int]]] = None,
        binaries: Optional[Dict[str, bytes]] = None,
        root: Optional[Path] = None,
    ) -> Path:
        content_dir = (root or publish_roots["incoming"]) / name
        content_dir.mkdir(parents=True)
        lines = "".join(f"{key}={value}\n" for key, value in metadata.items())
        (content_dir / config.METADATA_FILENAME).write_text(lines, encoding="utf-8")
        for relative, text in (files or {}).items():
            path = content_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        for relative, size in (images or {}).items():
            write_image(content_dir / relative, size)
        for relative, data in (binaries or {}).items():
            path = content_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        return content_dir.resolve()

    return _make


@pytest.fixture
def make_context(test_session, toolkit):
    """PublishContext over a content directory, sharing the test session"""
    def _make(content_dir: Path, metadata: Dict[str, str], is_published: bool = True, **kwargs) -> PublishContext:
        return PublishContext(
            session=test_session,
            toolkit=toolkit,
            content_dir=content_dir,
            metadata=metadata,
            is_published=is_published,
            **kwargs,
        )

    return _make


@pytest.fixture(scope="function")
async def client(test_session: AsyncSession, toolkit: FakeToolkit) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async test client with overridden database and media dependencies.
    """
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_toolkit] = lambda: toolkit

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    # Cleanup
    app.dependency_overrides.clear()


@pytest.fixture
def image_writer():
    return write_image
