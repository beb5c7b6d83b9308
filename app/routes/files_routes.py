"""
File routes: upload to Google Drive, listing, link redirects, deletion and
public streaming of stored content.
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import config
from app.connectors.google_drive import (
    DriveAPIError,
    NotFoundError,
    ProviderAuthError,
    TokenRefreshError,
)
from app.db import User, get_async_session
from app.schemas import FileDeleteResponse, FileRecordRead
from app.services.drive_file_service import DriveFileService
from app.services.media_stream_service import stream_to_client
from app.users import current_active_user

logger = logging.getLogger(__name__)

router = APIRouter()

REAUTH_DETAIL = "Google Drive access expired. Please sign in with Google again."


def get_drive_file_service(
    session: AsyncSession = Depends(get_async_session),
) -> DriveFileService:
    return DriveFileService(session)


def to_http_exception(e: Exception, action: str) -> HTTPException:
    """Translate a Drive domain error into the matching HTTP error."""
    if isinstance(e, TokenRefreshError | ProviderAuthError):
        logger.warning("Re-authentication required while trying to %s: %s", action, e)
        return HTTPException(status_code=401, detail=REAUTH_DETAIL)
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail="File not found")
    if isinstance(e, DriveAPIError):
        logger.error("Google Drive failed to %s: %s", action, e)
        return HTTPException(status_code=502, detail=f"Google Drive failed to {action}")
    logger.exception("Unexpected error while trying to %s", action)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


@router.post("/files", response_model=FileRecordRead)
async def upload_file(
    file: UploadFile = File(...),
    user: User = Depends(current_active_user),
    service: DriveFileService = Depends(get_drive_file_service),
):
    """
    Upload a file into the user's Drive folder.

    The body is streamed to Drive chunk by chunk.
    """
    max_size = config.MAX_FILE_SIZE_MB * 1024 * 1024
    if file.size is not None and file.size > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {config.MAX_FILE_SIZE_MB} MB",
        )

    try:
        record = await service.upload_file(user, file)
    except Exception as e:
        raise to_http_exception(e, "upload file") from e
    finally:
        await file.close()

    return FileRecordRead.from_record(record)


@router.get("/files", response_model=list[FileRecordRead])
async def read_files(
    user: User = Depends(current_active_user),
    service: DriveFileService = Depends(get_drive_file_service),
):
    try:
        records = await service.list_files(user)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=500, detail="Database error occurred while fetching files"
        ) from None
    return [FileRecordRead.from_record(record) for record in records]


@router.get("/files/web/{file_id}")
async def stream_file(
    file_id: int,
    session: AsyncSession = Depends(get_async_session),
    service: DriveFileService = Depends(get_drive_file_service),
):
    """
    Stream a stored file's content.

    No login is required: the file id is the capability, and the owner's
    Drive credentials are used to fetch the content.
    """
    try:
        record = await service.get_file(file_id)
        return await stream_to_client(session, record)
    except Exception as e:
        raise to_http_exception(e, "stream file") from e


@router.get("/files/{file_id}/preview")
async def preview_file(
    file_id: int,
    user: User = Depends(current_active_user),
    service: DriveFileService = Depends(get_drive_file_service),
):
    try:
        record = await service.get_owned_file(user, file_id)
    except NotFoundError as e:
        raise to_http_exception(e, "preview file") from e
    if not record.view_link:
        raise HTTPException(status_code=400, detail="Preview not available")
    return RedirectResponse(record.view_link)


@router.get("/files/{file_id}/download")
async def download_file(
    file_id: int,
    user: User = Depends(current_active_user),
    service: DriveFileService = Depends(get_drive_file_service),
):
    try:
        record = await service.get_owned_file(user, file_id)
    except NotFoundError as e:
        raise to_http_exception(e, "download file") from e
    if not record.download_link:
        raise HTTPException(status_code=400, detail="Download not available")
    return RedirectResponse(record.download_link)


@router.delete("/files/{file_id}", response_model=FileDeleteResponse)
async def delete_file(
    file_id: int,
    user: User = Depends(current_active_user),
    service: DriveFileService = Depends(get_drive_file_service),
):
    try:
        record = await service.get_owned_file(user, file_id)
        result = await service.delete_file(user, record)
    except Exception as e:
        raise to_http_exception(e, "delete file") from e

    return FileDeleteResponse(
        message="File deleted successfully",
        remote_deleted=result.remote_deleted,
        warning=result.warning,
    )
