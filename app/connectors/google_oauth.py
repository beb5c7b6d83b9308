"""
Google OAuth Utilities.

One OAuth client serves both the login flow (fastapi-users) and the Drive
token refresh, so the scopes granted at login are the ones Drive calls use.
"""

import logging
from typing import Any

import httpx
from httpx_oauth.clients.google import GoogleOAuth2

from app.config import config

logger = logging.getLogger(__name__)

GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

# Drive access is limited to files this application creates
GOOGLE_DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "openid",
]


class OfflineGoogleOAuth2(GoogleOAuth2):
    """Google OAuth client that always asks for a refresh token."""

    async def get_authorization_url(
        self,
        redirect_uri: str,
        state: str | None = None,
        scope: list[str] | None = None,
        **kwargs: Any,
    ) -> str:
        extras_params = dict(kwargs.pop("extras_params", None) or {})
        # offline access + forced consent so Google issues a refresh token
        extras_params.update({"access_type": "offline", "prompt": "consent"})
        return await super().get_authorization_url(
            redirect_uri, state, scope, extras_params=extras_params, **kwargs
        )


google_oauth_client = OfflineGoogleOAuth2(
    config.GOOGLE_OAUTH_CLIENT_ID or "",
    config.GOOGLE_OAUTH_CLIENT_SECRET or "",
    scopes=GOOGLE_DRIVE_SCOPES,
)


async def fetch_google_display_name(access_token: str) -> str | None:
    """
    Fetch the user's display name from Google's userinfo endpoint.

    Args:
        access_token: Google OAuth access token

    Returns:
        Display name or None if fetch fails
    """
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=10.0,
            )

        if response.status_code == 200:
            return response.json().get("name")

        logger.warning("Failed to fetch Google profile: %s", response.status_code)
        return None

    except httpx.HTTPError as e:
        logger.warning("Error fetching Google profile: %s", e)
        return None
