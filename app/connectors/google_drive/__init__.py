"""
Google Drive Connector Module.

Per-user credential refresh, authorized Drive clients with a single
retry on expired tokens, and the upload folder lookup.
"""

from .client import DriveMediaStream, GoogleDriveClient
from .client_factory import AuthorizedClientFactory, AuthorizedDriveClient
from .credentials import CredentialStore, TokenRefresher
from .errors import (
    DriveAPIError,
    DriveAuthError,
    FolderRaceWarning,
    GoogleDriveError,
    NotFoundError,
    ProviderAuthError,
    TokenRefreshError,
    UpstreamStreamError,
)
from .folder_manager import resolve_cloud_folder

__all__ = [
    "AuthorizedClientFactory",
    "AuthorizedDriveClient",
    "CredentialStore",
    "DriveAPIError",
    "DriveAuthError",
    "DriveMediaStream",
    "FolderRaceWarning",
    "GoogleDriveClient",
    "GoogleDriveError",
    "NotFoundError",
    "ProviderAuthError",
    "TokenRefreshError",
    "TokenRefresher",
    "UpstreamStreamError",
    "resolve_cloud_folder",
]
