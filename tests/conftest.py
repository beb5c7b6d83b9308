"""
Shared test fixtures and configuration for the Cloud Drive backend tests.
"""

import time
import uuid
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas import GoogleDriveCredentials


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async database session."""
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture
def mock_user() -> MagicMock:
    """Create a mock user object."""
    user = MagicMock()
    user.id = uuid.uuid4()
    user.email = "test@example.com"
    user.display_name = "Test User"
    user.is_active = True
    user.is_superuser = False
    user.is_verified = True
    return user


@pytest.fixture
def fresh_credentials() -> GoogleDriveCredentials:
    """Credentials valid for the next hour."""
    return GoogleDriveCredentials(
        access_token="fresh-access",
        refresh_token="refresh-1",
        expires_at=int(time.time()) + 3600,
    )


@pytest.fixture
def expired_credentials() -> GoogleDriveCredentials:
    """Credentials that expired a minute ago."""
    return GoogleDriveCredentials(
        access_token="old-access",
        refresh_token="refresh-1",
        expires_at=int(time.time()) - 60,
    )


@pytest.fixture
def mock_store(fresh_credentials) -> MagicMock:
    """CredentialStore double that keeps whatever was last saved."""
    store = MagicMock()
    store.saved = []

    async def save(user_id, credentials):
        store.saved.append(credentials)
        store.load.return_value = credentials

    store.load = AsyncMock(return_value=fresh_credentials)
    store.save = AsyncMock(side_effect=save)
    return store


@pytest.fixture
def mock_oauth_client() -> MagicMock:
    """OAuth client whose refresh returns a new access token."""
    oauth_client = MagicMock()
    oauth_client.refresh_token = AsyncMock(
        return_value={
            "access_token": "new-access",
            "expires_at": int(time.time()) + 3600,
        }
    )
    return oauth_client


@pytest.fixture
def drive_transport() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.MockTransport]:
    """Build an httpx.MockTransport that records the requests it served."""

    def factory(handler):
        requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording_handler)
        transport.requests = requests
        return transport

    return factory


@pytest.fixture
def file_record(mock_user) -> MagicMock:
    """A stored file owned by ``mock_user``."""
    record = MagicMock()
    record.id = 7
    record.owner_id = mock_user.id
    record.remote_id = "drive-file-1"
    record.name = "report.pdf"
    record.original_name = "report.pdf"
    record.size = 1024
    record.mime_type = "application/pdf"
    record.view_link = "https://drive.google.com/file/d/drive-file-1/view"
    record.download_link = "https://drive.google.com/uc?export=download&id=drive-file-1"
    return record
