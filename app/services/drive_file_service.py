"""
Service for files stored in the user's Google Drive.

Uploads go to the user's upload folder and are made readable by link; the
local FileRecord mirrors the Drive object.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import config
from app.connectors.google_drive import (
    AuthorizedClientFactory,
    NotFoundError,
    resolve_cloud_folder,
)
from app.connectors.google_drive.client import DEFAULT_MIME_TYPE
from app.db import FileRecord, User

logger = logging.getLogger(__name__)

DRIVE_DOWNLOAD_URL = "https://drive.google.com/uc?export=download&id={file_id}"


@dataclass
class DeleteResult:
    remote_deleted: bool
    warning: str | None = None


class UploadStream:
    """Reads an UploadFile in fixed-size chunks and counts the bytes sent."""

    def __init__(self, upload: UploadFile, chunk_size: int):
        self.upload = upload
        self.chunk_size = chunk_size
        self.bytes_read = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while chunk := await self.upload.read(self.chunk_size):
            self.bytes_read += len(chunk)
            yield chunk


def _parse_size(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class DriveFileService:
    """Upload, list, look up and delete a user's Drive-backed files."""

    def __init__(
        self,
        session: AsyncSession,
        factory: AuthorizedClientFactory | None = None,
    ):
        self.session = session
        self.factory = factory or AuthorizedClientFactory(session)

    async def upload_file(self, user: User, upload: UploadFile) -> FileRecord:
        """
        Stream an upload into the user's Drive folder and record it.

        The body is relayed in ``config.UPLOAD_CHUNK_SIZE`` chunks, never read
        into memory as a whole.
        """
        drive = await self.factory.for_user(user.id)
        folder_id = await resolve_cloud_folder(drive)

        original_name = upload.filename or "file"
        mime_type = upload.content_type or DEFAULT_MIME_TYPE
        stream = UploadStream(upload, config.UPLOAD_CHUNK_SIZE)

        data = await drive.create_file(
            {"name": original_name, "mimeType": mime_type, "parents": [folder_id]},
            stream,
            mime_type=mime_type,
            size=upload.size,
        )

        # Readable by anyone with the link, which the public stream endpoint relies on
        try:
            await drive.create_permission(data["id"], role="reader", principal="anyone")
        except Exception:
            logger.error(
                "Sharing failed after upload; Drive object %s for user %s has no file record",
                data["id"],
                user.id,
            )
            raise

        record = FileRecord(
            owner_id=user.id,
            remote_id=data["id"],
            name=data.get("name"),
            original_name=original_name,
            size=upload.size or stream.bytes_read or _parse_size(data.get("size")),
            mime_type=mime_type,
            view_link=data.get("webViewLink"),
            download_link=data.get("webContentLink")
            or DRIVE_DOWNLOAD_URL.format(file_id=data["id"]),
        )
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)

        logger.info(
            "Uploaded %s (%s bytes) to Drive as %s for user %s",
            original_name,
            record.size,
            record.remote_id,
            user.id,
        )
        return record

    async def list_files(self, user: User) -> list[FileRecord]:
        result = await self.session.execute(
            select(FileRecord)
            .filter(FileRecord.owner_id == user.id)
            .order_by(FileRecord.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_file(self, file_id: int) -> FileRecord:
        record = await self.session.get(FileRecord, file_id)
        if not record:
            raise NotFoundError(f"File {file_id} not found")
        return record

    async def get_owned_file(self, user: User, file_id: int) -> FileRecord:
        result = await self.session.execute(
            select(FileRecord).filter(
                FileRecord.id == file_id, FileRecord.owner_id == user.id
            )
        )
        record = result.scalars().first()
        if not record:
            raise NotFoundError(f"File {file_id} not found")
        return record

    async def delete_file(self, user: User, record: FileRecord) -> DeleteResult:
        """
        Delete the Drive object, then the local record.

        A Drive object that is already gone does not block removing the
        record, but the result says so. Any other Drive failure propagates and
        the record is kept.
        """
        drive = await self.factory.for_user(user.id)

        result = DeleteResult(remote_deleted=True)
        try:
            await drive.delete_file(record.remote_id)
        except NotFoundError:
            logger.warning(
                "Drive object %s for file %s was already removed", record.remote_id, record.id
            )
            result = DeleteResult(
                remote_deleted=False,
                warning="The file was already missing from Google Drive; only the local record was removed.",
            )

        await self.session.delete(record)
        await self.session.commit()
        return result


async def get_file_owner(session: AsyncSession, record: FileRecord) -> User:
    owner = await session.get(User, record.owner_id)
    if not owner:
        raise NotFoundError(f"Owner of file {record.id} not found")
    return owner


__all__ = [
    "DRIVE_DOWNLOAD_URL",
    "DeleteResult",
    "DriveFileService",
    "UploadStream",
    "get_file_owner",
]
