"""
Tests for DriveFileService: upload, listing, lookup and deletion.
"""

import io
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.config import config
from app.connectors.google_drive import DriveAPIError, NotFoundError
from app.db import FileRecord
from app.services.drive_file_service import (
    DRIVE_DOWNLOAD_URL,
    DriveFileService,
    UploadStream,
    get_file_owner,
)


def _upload(data: bytes, filename="big.bin", content_type="application/octet-stream"):
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        size=len(data),
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def drive_handle() -> MagicMock:
    handle = MagicMock()
    handle.received_chunks = []

    async def create_file(metadata, content=None, **kwargs):
        async for chunk in content:
            handle.received_chunks.append(chunk)
        return {
            "id": "drive-file-1",
            "name": metadata["name"],
            "webViewLink": "https://drive.google.com/file/d/drive-file-1/view",
            "webContentLink": "https://drive.google.com/uc?id=drive-file-1&export=download",
        }

    handle.create_file = AsyncMock(side_effect=create_file)
    handle.create_permission = AsyncMock(return_value={"id": "anyoneWithLink"})
    handle.delete_file = AsyncMock(return_value=None)
    return handle


@pytest.fixture
def factory(drive_handle) -> MagicMock:
    factory = MagicMock()
    factory.for_user = AsyncMock(return_value=drive_handle)
    return factory


@pytest.fixture
def service(mock_session, factory) -> DriveFileService:
    return DriveFileService(mock_session, factory=factory)


class TestUploadStream:
    """Tests for UploadStream."""

    @pytest.mark.asyncio
    async def test_reads_in_fixed_chunks_and_counts_bytes(self):
        stream = UploadStream(_upload(b"x" * 10), chunk_size=4)

        chunks = [chunk async for chunk in stream]

        assert [len(chunk) for chunk in chunks] == [4, 4, 2]
        assert stream.bytes_read == 10


class TestUploadFile:
    """Tests for DriveFileService.upload_file."""

    @pytest.mark.asyncio
    async def test_large_upload_is_relayed_in_chunks(
        self, service, drive_handle, mock_session, mock_user, monkeypatch
    ):
        """Each chunk read from the client is passed on; nothing is buffered whole."""
        monkeypatch.setattr(config, "UPLOAD_CHUNK_SIZE", 1024)
        data = b"z" * (1024 * 5 + 100)

        with patch(
            "app.services.drive_file_service.resolve_cloud_folder",
            AsyncMock(return_value="folder-1"),
        ):
            record = await service.upload_file(mock_user, _upload(data))

        assert len(drive_handle.received_chunks) == 6
        assert max(len(chunk) for chunk in drive_handle.received_chunks) == 1024
        assert b"".join(drive_handle.received_chunks) == data
        assert record.size == len(data)
        mock_session.add.assert_called_once_with(record)
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upload_goes_into_cloud_folder_and_is_shared(
        self, service, drive_handle, mock_user
    ):
        with patch(
            "app.services.drive_file_service.resolve_cloud_folder",
            AsyncMock(return_value="folder-1"),
        ):
            record = await service.upload_file(
                mock_user, _upload(b"hello", "notes.txt", "text/plain")
            )

        metadata = drive_handle.create_file.await_args.args[0]
        assert metadata == {
            "name": "notes.txt",
            "mimeType": "text/plain",
            "parents": ["folder-1"],
        }
        drive_handle.create_permission.assert_awaited_once_with(
            "drive-file-1", role="reader", principal="anyone"
        )
        assert isinstance(record, FileRecord)
        assert record.owner_id == mock_user.id
        assert record.remote_id == "drive-file-1"
        assert record.original_name == "notes.txt"
        assert record.mime_type == "text/plain"
        assert record.view_link.endswith("/view")

    @pytest.mark.asyncio
    async def test_download_link_falls_back_to_export_url(
        self, service, drive_handle, mock_user
    ):
        async def create_file(metadata, content=None, **kwargs):
            async for _ in content:
                pass
            return {"id": "drive-file-2", "name": metadata["name"]}

        drive_handle.create_file.side_effect = create_file

        with patch(
            "app.services.drive_file_service.resolve_cloud_folder",
            AsyncMock(return_value="folder-1"),
        ):
            record = await service.upload_file(mock_user, _upload(b"abc"))

        assert record.download_link == DRIVE_DOWNLOAD_URL.format(file_id="drive-file-2")

    @pytest.mark.asyncio
    async def test_drive_failure_stores_nothing(
        self, service, drive_handle, mock_session, mock_user
    ):
        drive_handle.create_file.side_effect = DriveAPIError(500, "backend error")

        with patch(
            "app.services.drive_file_service.resolve_cloud_folder",
            AsyncMock(return_value="folder-1"),
        ):
            with pytest.raises(DriveAPIError):
                await service.upload_file(mock_user, _upload(b"abc"))

        mock_session.add.assert_not_called()
        mock_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_sharing_failure_logs_uploaded_drive_id(
        self, service, drive_handle, mock_session, mock_user, caplog
    ):
        """The uploaded object is left without a record, so its id must be logged."""
        drive_handle.create_permission.side_effect = DriveAPIError(403, "sharing disabled")

        with patch(
            "app.services.drive_file_service.resolve_cloud_folder",
            AsyncMock(return_value="folder-1"),
        ):
            with caplog.at_level(logging.ERROR, logger="app.services.drive_file_service"):
                with pytest.raises(DriveAPIError):
                    await service.upload_file(mock_user, _upload(b"abc"))

        assert "drive-file-1" in caplog.text
        mock_session.add.assert_not_called()


def _scalars_result(first=None, all_=None):
    result = MagicMock()
    scalars = MagicMock()
    scalars.first.return_value = first
    scalars.all.return_value = all_ or []
    result.scalars.return_value = scalars
    return result


class TestLookup:
    """Tests for listing and fetching file records."""

    @pytest.mark.asyncio
    async def test_list_files_returns_records(self, service, mock_session, mock_user, file_record):
        mock_session.execute = AsyncMock(return_value=_scalars_result(all_=[file_record]))

        records = await service.list_files(mock_user)

        assert records == [file_record]

    @pytest.mark.asyncio
    async def test_get_owned_file_not_found(self, service, mock_session, mock_user):
        mock_session.execute = AsyncMock(return_value=_scalars_result(first=None))

        with pytest.raises(NotFoundError):
            await service.get_owned_file(mock_user, 99)

    @pytest.mark.asyncio
    async def test_get_file_not_found(self, service, mock_session):
        mock_session.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await service.get_file(99)

    @pytest.mark.asyncio
    async def test_get_file_owner_missing(self, mock_session, file_record):
        mock_session.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await get_file_owner(mock_session, file_record)


class TestDeleteFile:
    """Tests for DriveFileService.delete_file."""

    @pytest.mark.asyncio
    async def test_deletes_remote_then_local(
        self, service, drive_handle, mock_session, mock_user, file_record
    ):
        result = await service.delete_file(mock_user, file_record)

        assert result.remote_deleted is True
        assert result.warning is None
        drive_handle.delete_file.assert_awaited_once_with("drive-file-1")
        mock_session.delete.assert_awaited_once_with(file_record)
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_remote_already_gone_removes_local_and_warns(
        self, service, drive_handle, mock_session, mock_user, file_record
    ):
        """A Drive object deleted out of band still lets the record be removed."""
        drive_handle.delete_file.side_effect = NotFoundError("remote object not found")

        result = await service.delete_file(mock_user, file_record)

        assert result.remote_deleted is False
        assert "missing from Google Drive" in result.warning
        mock_session.delete.assert_awaited_once_with(file_record)

    @pytest.mark.asyncio
    async def test_other_drive_failure_keeps_record(
        self, service, drive_handle, mock_session, mock_user, file_record
    ):
        drive_handle.delete_file.side_effect = DriveAPIError(500, "backend error")

        with pytest.raises(DriveAPIError):
            await service.delete_file(mock_user, file_record)

        mock_session.delete.assert_not_called()
        mock_session.commit.assert_not_called()
