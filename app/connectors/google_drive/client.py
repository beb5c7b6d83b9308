"""Google Drive v3 REST client bound to a single access token."""

import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

import httpx

from .errors import (
    DriveAPIError,
    DriveAuthError,
    NotFoundError,
    UpstreamStreamError,
)

logger = logging.getLogger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DEFAULT_MIME_TYPE = "application/octet-stream"
FILE_FIELDS = "id, name, size, mimeType, webViewLink, webContentLink"


def raise_for_drive_status(response: httpx.Response, action: str) -> None:
    """Map a Drive HTTP failure onto the error taxonomy."""
    status = response.status_code
    if status < 400:
        return
    detail = response.text
    if status == 401:
        raise DriveAuthError(status, f"{action}: {detail}")
    if status == 404:
        raise NotFoundError(f"{action}: remote object not found")
    raise DriveAPIError(status, f"{action}: {detail}")


class DriveMediaStream:
    """
    An open ``alt=media`` response.

    Owns both the response and the HTTP client it came from; ``aclose`` must
    be called once the caller is done, whether the body was fully read or not.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response
        self._closed = False

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    async def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes(chunk_size):
                yield chunk
        except httpx.HTTPError as e:
            raise UpstreamStreamError(f"Drive media stream interrupted: {e!s}") from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class GoogleDriveClient:
    """Client for Google Drive API operations."""

    def __init__(
        self,
        access_token: str | None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        """
        Initialize Google Drive client.

        Args:
            access_token: OAuth access token sent as a bearer token
            transport: Optional httpx transport (tests use httpx.MockTransport)
            timeout: Per-operation network timeout in seconds
        """
        self.access_token = access_token
        self._transport = transport
        self._timeout = timeout

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _request(
        self, client: httpx.AsyncClient, method: str, url: str, action: str, **kwargs
    ) -> httpx.Response:
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise DriveAPIError(503, f"{action}: Drive unreachable: {e!s}") from e
        raise_for_drive_status(response, action)
        return response

    async def list_files(
        self,
        query: str = "",
        fields: str = "nextPageToken, files(id, name)",
        page_size: int = 100,
        page_token: str | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        """
        List files from Google Drive.

        Args:
            query: Search query (e.g., "mimeType != 'application/vnd.google-apps.folder'")
            fields: Fields to retrieve
            page_size: Number of files per page (max 1000)
            page_token: Token for next page

        Returns:
            Tuple of (files list, next_page_token)
        """
        params: dict[str, Any] = {
            "pageSize": min(page_size, 1000),
            "fields": fields,
            "spaces": "drive",
        }
        if query:
            params["q"] = query
        if page_token:
            params["pageToken"] = page_token

        async with self._http_client() as client:
            response = await self._request(
                client, "GET", f"{DRIVE_API_BASE}/files", "list files", params=params
            )

        data = response.json()
        return data.get("files", []), data.get("nextPageToken")

    async def create_file(
        self,
        metadata: dict[str, Any],
        content: AsyncIterable[bytes] | None = None,
        *,
        mime_type: str | None = None,
        size: int | None = None,
        fields: str = FILE_FIELDS,
    ) -> dict[str, Any]:
        """
        Create a Drive file, optionally uploading its content.

        Content is sent through a resumable upload session as a single
        streamed PUT, so only one chunk of ``content`` is held at a time.

        Args:
            metadata: Drive file resource (name, mimeType, parents, ...)
            content: Async iterable of body chunks, or None for metadata only
            mime_type: Content type of the body
            size: Body length in bytes when known

        Returns:
            The created file resource restricted to ``fields``
        """
        async with self._http_client() as client:
            if content is None:
                response = await self._request(
                    client,
                    "POST",
                    f"{DRIVE_API_BASE}/files",
                    "create file",
                    params={"fields": fields},
                    json=metadata,
                )
                return response.json()

            content_type = mime_type or metadata.get("mimeType") or DEFAULT_MIME_TYPE
            session_headers = {"X-Upload-Content-Type": content_type}
            if size is not None:
                session_headers["X-Upload-Content-Length"] = str(size)

            session_response = await self._request(
                client,
                "POST",
                f"{DRIVE_UPLOAD_BASE}/files",
                "start upload",
                params={"uploadType": "resumable", "fields": fields},
                headers=session_headers,
                json=metadata,
            )
            upload_url = session_response.headers.get("Location")
            if not upload_url:
                raise DriveAPIError(
                    session_response.status_code,
                    "start upload: no upload session URL returned",
                )

            body_headers = {"Content-Type": content_type}
            if size is not None:
                body_headers["Content-Length"] = str(size)

            response = await self._request(
                client,
                "PUT",
                upload_url,
                "upload content",
                headers=body_headers,
                content=content,
            )
            return response.json()

    async def create_folder(self, name: str, parent_id: str | None = None) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            metadata["parents"] = [parent_id]
        return await self.create_file(metadata, fields="id, name")

    async def get_media(self, file_id: str) -> DriveMediaStream:
        """
        Open the raw content of a file (not its metadata).

        Raises:
            NotFoundError: The remote object does not exist
            DriveAuthError: The access token was rejected
            UpstreamStreamError: Drive could not be reached or failed
        """
        client = self._http_client()
        request = client.build_request(
            "GET",
            f"{DRIVE_API_BASE}/files/{file_id}",
            params={"alt": "media"},
            headers=self._auth_headers(),
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise UpstreamStreamError(f"Failed to open Drive media stream: {e!s}") from e

        if response.status_code >= 400:
            try:
                await response.aread()
                if response.status_code in (401, 404):
                    raise_for_drive_status(response, "get media")
                raise UpstreamStreamError(
                    f"Drive media request failed: {response.status_code}"
                )
            finally:
                await response.aclose()
                await client.aclose()

        return DriveMediaStream(client, response)

    async def delete_file(self, file_id: str) -> None:
        async with self._http_client() as client:
            await self._request(
                client, "DELETE", f"{DRIVE_API_BASE}/files/{file_id}", "delete file"
            )

    async def create_permission(
        self, file_id: str, role: str = "reader", principal: str = "anyone"
    ) -> dict[str, Any]:
        """Grant ``role`` on a file; the default makes it readable by link."""
        async with self._http_client() as client:
            response = await self._request(
                client,
                "POST",
                f"{DRIVE_API_BASE}/files/{file_id}/permissions",
                "create permission",
                json={"role": role, "type": principal},
            )
        return response.json()
