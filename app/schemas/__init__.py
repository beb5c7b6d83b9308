from .base import IDModel
from .files import FileDeleteResponse, FileRecordRead
from .google_auth_credentials import GoogleDriveCredentials
from .users import UserRead, UserUpdate

__all__ = [
    "FileDeleteResponse",
    "FileRecordRead",
    "GoogleDriveCredentials",
    "IDModel",
    "UserRead",
    "UserUpdate",
]
