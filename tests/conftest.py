"""
Shared fixtures.

Settings are read from the environment when app.config is first imported, so
the required variables are seeded here before anything under app/ loads.
Route tests run against an in-memory SQLite database and an in-memory object
store; no Postgres or S3 is needed.
"""

from __future__ import annotations

import os
import sys

# ── Make the backend package importable without installing it ──────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test-access")
os.environ.setdefault("S3_SECRET_KEY", "test-secret")
os.environ.setdefault("S3_BUCKET", "test-bucket")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.errors import UpstreamFetchError
from app.main import app
from app.services.storage import StorageError, StorageService, get_storage


# ─────────────────────────────────────────────────────────────────────────────
# In-memory object store
# ─────────────────────────────────────────────────────────────────────────────

class FakeStorage(StorageService):
    """StorageService with a dict instead of an S3 bucket."""

    def __init__(self):
        self.bucket_name = "test-bucket"
        self.objects: dict[str, bytes] = {}
        self.fail_uploads = False

    def upload_bytes(self, data: bytes, key: str, content_type: str | None = None) -> str:
        if self.fail_uploads:
            raise StorageError("bucket unavailable")
        path = f"s3://{self.bucket_name}/{key}"
        self.objects[path] = data
        return path

    def download_file(self, file_path: str) -> bytes:
        if file_path not in self.objects:
            raise UpstreamFetchError("Failed to fetch file data from storage", details=file_path)
        return self.objects[file_path]

    def delete_file(self, file_path: str) -> bool:
        return self.objects.pop(file_path, None) is not None


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def client(db_session, storage):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def signup_user(client: TestClient, username: str = "alice", email: str = "alice@example.com",
                password: str = "secret123") -> dict:
    response = client.post(
        "/api/auth/signup",
        data={
            "username": username,
            "email": email,
            "password": password,
            "firstName": "Alice",
            "lastName": "Example",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(client) -> dict:
    body = signup_user(client)
    return {"Authorization": f"Bearer {body['accessToken']}"}
