"""Pytest fixtures for docshare tests.

Provides reusable test fixtures for:
- A temporary SQLite database per test (file-backed so threads can share it)
- An in-memory blob gateway that records calls and can be told to fail
- An AccessBroker wired to both
- A TestClient with the database and gateway dependencies overridden

Usage:
    def test_owner_download(client, auth_headers):
        response = client.get("/api/v1/documents", headers=auth_headers("user-a"))
        assert response.status_code == 200
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Generator, List, Tuple
from urllib.parse import quote

# Set environment variables BEFORE any docshare imports (settings are read at import time)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("PUBLIC_BASE_URL", "https://docs.example.test")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from docshare.auth.jwt import create_access_token
from docshare.database import create_tables, get_db
from docshare.dependencies import get_blob_gateway
from docshare.domain.documents import AccessBroker
from docshare.domain.documents.errors import GatewayUnavailableError
from docshare.domain.documents.models import ReadHandle, WriteHandle
from docshare.domain.documents.ports import BlobGatewayPort
from docshare.infrastructure.repositories import SqlDocumentRepository
from docshare.models.base import Base


class InMemoryBlobGateway(BlobGatewayPort):
    """Blob gateway fake keeping objects in a dict.

    Every call is appended to `calls` as (operation, storage_key) so tests
    can assert on ordering relative to repository writes. Setting one of the
    fail_* flags makes the matching operation raise GatewayUnavailableError.
    """

    def __init__(self, key_prefix: str = "documents"):
        self.key_prefix = key_prefix
        self.objects: Dict[str, bytes] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_write = False
        self.fail_read = False
        self.fail_delete = False
        self.healthy = True
        self._counter = 0

    def owner_prefix(self, owner_id: str) -> str:
        return f"{self.key_prefix}/{quote(owner_id, safe='')}/"

    async def issue_write_handle(self, owner_id: str, file_name: str, content_type: str) -> WriteHandle:
        if self.fail_write:
            raise GatewayUnavailableError("Could not issue an upload handle")
        self._counter += 1
        storage_key = f"{self.owner_prefix(owner_id)}{self._counter:06d}-{file_name}"
        self.calls.append(("write_handle", storage_key))
        return WriteHandle(
            url=f"https://blobs.example.test/{storage_key}?signature=put",
            storage_key=storage_key,
            content_type=content_type,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=300),
        )

    async def issue_read_handle(self, storage_key: str) -> ReadHandle:
        if self.fail_read:
            raise GatewayUnavailableError("Could not issue a download handle")
        self.calls.append(("read_handle", storage_key))
        return ReadHandle(
            url=f"https://blobs.example.test/{storage_key}?signature=get",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=300),
        )

    async def delete_object(self, storage_key: str) -> None:
        if self.fail_delete:
            raise GatewayUnavailableError("Could not delete the stored object")
        self.calls.append(("delete", storage_key))
        self.objects.pop(storage_key, None)

    async def check_health(self) -> bool:
        return self.healthy

    def put(self, storage_key: str, data: bytes = b"%PDF-1.4 test") -> None:
        """Simulate the client's PUT to a write handle."""
        self.objects[storage_key] = data


@pytest.fixture(scope="function")
def engine(tmp_path) -> Generator[Engine, None, None]:
    """File-backed SQLite engine with all tables created."""
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'docshare-test.db'}",
        connect_args={"check_same_thread": False},
    )
    create_tables(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repository(db_session) -> SqlDocumentRepository:
    return SqlDocumentRepository(db_session)


@pytest.fixture
def gateway() -> InMemoryBlobGateway:
    return InMemoryBlobGateway()


@pytest.fixture
def broker(repository, gateway) -> AccessBroker:
    return AccessBroker(
        repository=repository,
        gateway=gateway,
        share_url_base="https://docs.example.test",
    )


@pytest.fixture
def upload_document(broker, gateway) -> Callable:
    """Run the full two-phase upload for an owner and return the descriptor."""

    async def _upload(owner_id: str, title: str = "Lecture notes", file_name: str = "notes.pdf"):
        pending = await broker.initiate_upload(owner_id, file_name, "application/pdf")
        gateway.put(pending.storage_key)
        return broker.finalize_upload(
            owner_id,
            storage_key=pending.storage_key,
            title=title,
            description=None,
            file_name=file_name,
            size_bytes=1024,
            content_type="application/pdf",
        )

    return _upload


@pytest.fixture
def client(session_factory, gateway) -> Generator[TestClient, None, None]:
    """TestClient with database and blob gateway dependencies overridden."""
    from docshare.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    """Build an Authorization header for a caller id."""

    def _headers(user_id: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
