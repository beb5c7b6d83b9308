from datetime import datetime

from pydantic import BaseModel

from .base import IDModel


class FileRecordRead(IDModel):
    """File metadata as returned by the listing and upload endpoints."""

    original_name: str
    size: int = 0
    uploaded_at: datetime
    view_link: str | None = None
    download_link: str | None = None

    @classmethod
    def from_record(cls, record) -> "FileRecordRead":
        return cls(
            id=record.id,
            original_name=record.original_name or record.name or "Untitled",
            size=record.size or 0,
            uploaded_at=record.created_at,
            view_link=record.view_link,
            download_link=record.download_link,
        )


class FileDeleteResponse(BaseModel):
    message: str
    remote_deleted: bool = True
    warning: str | None = None
