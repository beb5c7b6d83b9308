"""Google Drive OAuth credential management."""

import logging
import uuid

import httpx
from httpx_oauth.oauth2 import BaseOAuth2, RefreshTokenError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.config import config
from app.connectors.google_oauth import google_oauth_client
from app.db import GOOGLE_OAUTH_NAME, OAuthAccount
from app.schemas.google_auth_credentials import GoogleDriveCredentials

from .errors import ProviderAuthError, TokenRefreshError

logger = logging.getLogger(__name__)


class CredentialStore:
    """Durable token pair of a user, kept on the Google OAuth account row."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_account(self, user_id: uuid.UUID) -> OAuthAccount:
        result = await self.session.execute(
            select(OAuthAccount).filter(
                OAuthAccount.user_id == user_id,
                OAuthAccount.oauth_name == GOOGLE_OAUTH_NAME,
            )
        )
        account = result.scalars().first()
        if not account:
            raise ProviderAuthError(f"No Google account linked to user {user_id}")
        return account

    async def load(self, user_id: uuid.UUID) -> GoogleDriveCredentials:
        account = await self._get_account(user_id)
        return GoogleDriveCredentials(
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            expires_at=account.expires_at,
        )

    async def save(self, user_id: uuid.UUID, credentials: GoogleDriveCredentials) -> None:
        """
        Write the token fields back; last write wins.

        An empty refresh token never replaces a stored one.
        """
        account = await self._get_account(user_id)
        if credentials.access_token:
            account.access_token = credentials.access_token
        account.expires_at = credentials.expires_at
        if credentials.refresh_token:
            account.refresh_token = credentials.refresh_token
        self.session.add(account)
        await self.session.commit()


class TokenRefresher:
    """Exchanges refresh tokens and persists the result through a CredentialStore."""

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: BaseOAuth2 | None = None,
        margin_seconds: int | None = None,
    ):
        self.store = store
        self.oauth_client = oauth_client or google_oauth_client
        self.margin_seconds = (
            config.TOKEN_REFRESH_MARGIN_SECONDS
            if margin_seconds is None
            else margin_seconds
        )

    async def exchange(self, credentials: GoogleDriveCredentials) -> GoogleDriveCredentials:
        """
        Trade the refresh token for a new access token.

        Returns:
            The merged credentials (not yet persisted)

        Raises:
            TokenRefreshError: No refresh token, or the token endpoint refused
        """
        if not credentials.is_refreshable:
            raise TokenRefreshError("No refresh token stored; re-authentication required")

        try:
            token = await self.oauth_client.refresh_token(credentials.refresh_token)
        except (RefreshTokenError, httpx.HTTPError) as e:
            raise TokenRefreshError(f"Failed to refresh Google OAuth credentials: {e!s}") from e

        return credentials.merge_token_response(token)

    async def force_refresh(
        self, user_id: uuid.UUID, credentials: GoogleDriveCredentials
    ) -> GoogleDriveCredentials:
        """Refresh regardless of expiry and persist the new token."""
        refreshed = await self.exchange(credentials)
        await self.store.save(user_id, refreshed)
        logger.info("Refreshed Google Drive token for user %s", user_id)
        return refreshed

    async def ensure_fresh(
        self,
        user_id: uuid.UUID,
        credentials: GoogleDriveCredentials,
        *,
        allow_retry: bool = True,
    ) -> GoogleDriveCredentials:
        """
        Return credentials usable right now, refreshing them when stale.

        With ``allow_retry`` a failed refresh is logged and the existing
        credentials are returned, leaving the Drive call to fail (and be
        retried) on its own. Without it the failure is raised.

        Raises:
            TokenRefreshError: Refresh failed and ``allow_retry`` is False
        """
        if not credentials.is_stale(self.margin_seconds):
            return credentials

        try:
            return await self.force_refresh(user_id, credentials)
        except TokenRefreshError as e:
            if not allow_retry:
                raise
            logger.warning("Access token not refreshed for user %s: %s", user_id, e)
            return credentials
