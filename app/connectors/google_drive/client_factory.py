"""
Per-user construction of authorized Google Drive clients.

Every request builds its own client from the user's stored credentials, so no
client state is shared between requests. Replayable operations get one retry
after a forced token refresh when Drive answers 401.
"""

import logging
import uuid
from collections.abc import AsyncIterable, Awaitable, Callable
from typing import Any, TypeVar

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from .client import DriveMediaStream, GoogleDriveClient
from .credentials import CredentialStore, TokenRefresher
from .errors import DriveAuthError, ProviderAuthError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DriveOperation = Callable[[GoogleDriveClient], Awaitable[T]]


class AuthorizedDriveClient:
    """Drive handle for one user; exposes the operations the file service needs."""

    def __init__(
        self,
        factory: "AuthorizedClientFactory",
        user_id: uuid.UUID,
        client: GoogleDriveClient,
    ):
        self._factory = factory
        self.user_id = user_id
        self.client = client

    async def _call(self, operation: DriveOperation[T]) -> T:
        return await self._factory.call_with_retry(self, operation)

    async def _call_once(self, operation: DriveOperation[T]) -> T:
        try:
            return await operation(self.client)
        except DriveAuthError as e:
            raise ProviderAuthError(f"Google Drive rejected the credentials: {e.message}") from e

    async def list_files(self, query: str = "", **kwargs: Any) -> tuple[list[dict[str, Any]], str | None]:
        return await self._call(lambda client: client.list_files(query, **kwargs))

    async def create_folder(self, name: str, parent_id: str | None = None) -> dict[str, Any]:
        return await self._call(lambda client: client.create_folder(name, parent_id))

    async def create_file(
        self,
        metadata: dict[str, Any],
        content: AsyncIterable[bytes] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if content is None:
            return await self._call(lambda client: client.create_file(metadata, **kwargs))
        # an upload body can only be consumed once
        return await self._call_once(
            lambda client: client.create_file(metadata, content, **kwargs)
        )

    async def get_media(self, file_id: str) -> DriveMediaStream:
        return await self._call_once(lambda client: client.get_media(file_id))

    async def delete_file(self, file_id: str) -> None:
        await self._call(lambda client: client.delete_file(file_id))

    async def create_permission(
        self, file_id: str, role: str = "reader", principal: str = "anyone"
    ) -> dict[str, Any]:
        return await self._call(
            lambda client: client.create_permission(file_id, role, principal)
        )


class AuthorizedClientFactory:
    """Builds Drive handles bound to a user's (possibly just refreshed) credentials."""

    def __init__(
        self,
        session: AsyncSession,
        refresher: TokenRefresher | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = refresher.store if refresher else CredentialStore(session)
        self.refresher = refresher or TokenRefresher(self.store)
        self._transport = transport

    def _build_client(self, access_token: str | None) -> GoogleDriveClient:
        return GoogleDriveClient(access_token, transport=self._transport)

    async def for_user(self, user_id: uuid.UUID, *, allow_retry: bool = True) -> AuthorizedDriveClient:
        credentials = await self.store.load(user_id)
        credentials = await self.refresher.ensure_fresh(
            user_id, credentials, allow_retry=allow_retry
        )
        return AuthorizedDriveClient(self, user_id, self._build_client(credentials.access_token))

    async def call_with_retry(
        self,
        handle: AuthorizedDriveClient,
        operation: DriveOperation[T],
        allow_retry: bool = True,
    ) -> T:
        """
        Run ``operation``; on a 401 refresh once and run it again on a new client.

        A second 401 raises ProviderAuthError. There is no third attempt.
        """
        try:
            return await operation(handle.client)
        except DriveAuthError as e:
            if not allow_retry:
                raise ProviderAuthError(
                    f"Google Drive rejected the credentials: {e.message}"
                ) from e
            logger.info(
                "Drive returned 401 for user %s, refreshing token and retrying once",
                handle.user_id,
            )

        credentials = await self.store.load(handle.user_id)
        credentials = await self.refresher.force_refresh(handle.user_id, credentials)
        handle.client = self._build_client(credentials.access_token)

        try:
            return await operation(handle.client)
        except DriveAuthError as e:
            raise ProviderAuthError(
                f"Google Drive still unauthorized after token refresh: {e.message}"
            ) from e
