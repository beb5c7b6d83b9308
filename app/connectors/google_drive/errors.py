"""Error taxonomy for Google Drive access."""


class GoogleDriveError(Exception):
    """Base class for Drive credential and API failures."""


class TokenRefreshError(GoogleDriveError):
    """The refresh token could not be exchanged for a new access token."""


class ProviderAuthError(GoogleDriveError):
    """Drive rejected the request as unauthorized even after a token refresh."""


class NotFoundError(GoogleDriveError):
    """A file record, its owner, or the remote Drive object does not exist."""


class UpstreamStreamError(GoogleDriveError):
    """Relaying a media stream from Drive failed."""


class DriveAPIError(GoogleDriveError):
    """Drive answered with an unexpected HTTP status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Drive API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class DriveAuthError(DriveAPIError):
    """HTTP 401 from Drive; the access token was rejected."""


class FolderRaceWarning(UserWarning):
    """More than one upload folder with the same name exists."""
