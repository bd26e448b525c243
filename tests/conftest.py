"""Shared pytest fixtures for test suite"""
import pytest
from pathlib import Path
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vidtube.main import app
from vidtube.database import Base, get_db
from vidtube.models.user import User
from vidtube.repositories import user_repository
from vidtube.services.media_storage import UploadedMedia, get_media_storage
from vidtube.services.temp_files import TempFileStore, cleanup_files, get_temp_store
from vidtube.services.token_service import TokenService


# SQLite in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

VIDEO_EXTENSIONS = {".mp4", ".mov", ".webm", ".mkv"}
TEST_PASSWORD = "pw123"


class FakeMediaStorage:
    """
    In-memory stand-in for the remote storage gateway. Honors the same contract:
    the local file is removed on every upload attempt, delete never raises.
    """

    def __init__(self):
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.upload_attempts: list[str] = []
        self.fail_all = False
        self.fail_extensions: set[str] = set()
        self.video_duration = 42.5

    async def upload(self, local_path: str | None) -> UploadedMedia | None:
        if not local_path:
            return None
        self.upload_attempts.append(local_path)
        path = Path(local_path)
        existed = path.is_file()
        cleanup_files(local_path)
        ext = path.suffix.lower()
        if not existed or self.fail_all or ext in self.fail_extensions:
            return None
        kind = "video" if ext in VIDEO_EXTENSIONS else "image"
        url = f"https://res.cloudinary.com/demo/{kind}/upload/v1/{path.stem}{ext}"
        self.uploaded.append(url)
        return UploadedMedia(
            url=url,
            public_id=path.stem,
            resource_type=kind,
            duration=self.video_duration if kind == "video" else None,
        )

    async def delete(self, remote_url: str | None) -> None:
        if remote_url:
            self.deleted.append(remote_url)

    async def delete_many(self, *remote_urls: str | None) -> None:
        for url in remote_urls:
            await self.delete(url)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh SQLite in-memory database session for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def storage() -> FakeMediaStorage:
    return FakeMediaStorage()


@pytest.fixture(scope="function")
def temp_dir(tmp_path: Path) -> Path:
    """Directory the upload staging writes into; tests assert it ends up empty."""
    directory = tmp_path / "temp"
    directory.mkdir()
    return directory


@pytest.fixture(scope="function")
def client(db_session: Session, storage: FakeMediaStorage, temp_dir: Path) -> Generator[TestClient, None, None]:
    """FastAPI test client with test database, fake remote storage and a tmp staging dir"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close session here, handled by fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_storage] = lambda: storage
    app.dependency_overrides[get_temp_store] = lambda: TempFileStore(temp_dir)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def make_user(db_session: Session) -> Callable[..., User]:
    """Create an account directly in the database"""

    def _make(username: str = "alice", email: str | None = None, full_name: str | None = None) -> User:
        return user_repository.create_user(
            db_session,
            username=username,
            email=email or f"{username.lower()}@example.com",
            full_name=full_name or username.title(),
            password=TEST_PASSWORD,
            avatar=f"https://res.cloudinary.com/demo/image/upload/v1/avatar_{username.lower()}.png",
        )

    return _make


@pytest.fixture(scope="function")
def auth_headers(db_session: Session) -> Callable[[User], dict]:
    """Bearer header for a user, issued through the token service"""

    def _headers(user: User) -> dict:
        access_token, _ = TokenService().issue_token_pair(db_session, user.id)
        return {"Authorization": f"Bearer {access_token}"}

    return _headers


@pytest.fixture(scope="function")
def two_users(make_user) -> tuple[User, User]:
    """Two accounts for ownership tests"""
    return make_user("alice"), make_user("bob")
