"""
Google Drive OAuth credentials schema.
"""

import time
from typing import Any

from pydantic import BaseModel, field_validator


class GoogleDriveCredentials(BaseModel):
    """Access/refresh token pair for a user's delegated Drive access."""

    access_token: str | None = None
    refresh_token: str | None = None
    # Epoch seconds, same unit fastapi-users stores on the OAuth account
    expires_at: int | None = None

    def is_stale(self, margin_seconds: int = 60, now: float | None = None) -> bool:
        """Unset expiry, or expiring within ``margin_seconds``, means stale."""
        if self.expires_at is None:
            return True
        if now is None:
            now = time.time()
        return self.expires_at <= now + margin_seconds

    @property
    def is_refreshable(self) -> bool:
        """Check if the credentials can be refreshed."""
        return bool(self.refresh_token)

    def merge_token_response(self, token: dict[str, Any]) -> "GoogleDriveCredentials":
        """
        Return a copy updated from a token endpoint response.

        Google omits ``refresh_token`` on most refreshes, so an absent or
        empty value keeps the stored one.
        """
        update: dict[str, Any] = {}
        if token.get("access_token"):
            update["access_token"] = token["access_token"]
        expires_at = token.get("expires_at")
        if expires_at is None and token.get("expires_in") is not None:
            expires_at = int(time.time()) + int(token["expires_in"])
        if expires_at is not None:
            update["expires_at"] = int(expires_at)
        if token.get("refresh_token"):
            update["refresh_token"] = token["refresh_token"]
        return self.model_copy(update=update)

    @field_validator("expires_at", mode="before")
    @classmethod
    def coerce_epoch_seconds(cls, v):
        """Accept floats and numeric strings for the expiry."""
        if v is None or v == "":
            return None
        return int(float(v))
