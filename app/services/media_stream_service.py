"""
Relays a stored file's Drive content to an HTTP client.

The upstream stream is opened before any response headers are produced, so a
missing owner, a refused token or an unreachable Drive still surfaces as a
proper status code. Once bytes are flowing, failures can only cut the
connection.
"""

import logging
from collections.abc import AsyncIterator
from urllib.parse import quote

import anyio
from fastapi.responses import PlainTextResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from app.config import config
from app.connectors.google_drive import (
    AuthorizedClientFactory,
    DriveMediaStream,
    UpstreamStreamError,
)
from app.connectors.google_drive.client import DEFAULT_MIME_TYPE
from app.db import FileRecord
from app.services.drive_file_service import get_file_owner

logger = logging.getLogger(__name__)


def build_stream_headers(record: FileRecord) -> dict[str, str]:
    """
    Headers for relaying a stored file inline.

    Content-Type is the stored value verbatim. The content is user supplied
    and served from the API origin, so it is never sniffed and any active
    content runs sandboxed.
    """
    filename = quote(record.original_name or record.name or "file", safe="!*'()")
    return {
        "Content-Type": record.mime_type or DEFAULT_MIME_TYPE,
        "Content-Disposition": f'inline; filename="{filename}"',
        "Accept-Ranges": "bytes",
        "Cache-Control": f"public, max-age={config.STREAM_CACHE_MAX_AGE}",
        "X-Content-Type-Options": "nosniff",
        "Content-Security-Policy": "sandbox",
    }


async def relay_media(
    media: DriveMediaStream, record: FileRecord, chunk_size: int
) -> AsyncIterator[bytes]:
    """Yield upstream chunks as they arrive; always release the upstream."""
    sent = 0
    try:
        async for chunk in media.iter_chunks(chunk_size):
            sent += len(chunk)
            yield chunk
    except UpstreamStreamError:
        logger.error(
            "Drive stream for file %s broke after %d bytes", record.id, sent
        )
        raise
    except anyio.get_cancelled_exc_class():
        logger.info("Client disconnected from file %s after %d bytes", record.id, sent)
        raise
    finally:
        with anyio.CancelScope(shield=True):
            await media.aclose()


async def stream_to_client(
    session: AsyncSession,
    record: FileRecord,
    *,
    factory: AuthorizedClientFactory | None = None,
    chunk_size: int | None = None,
) -> Response:
    """
    Open the owner's Drive content for ``record`` and return a streaming response.

    Raises:
        NotFoundError: The owner or the remote object no longer exists
        TokenRefreshError / ProviderAuthError: The owner's credentials are unusable
    """
    owner = await get_file_owner(session, record)
    factory = factory or AuthorizedClientFactory(session)
    drive = await factory.for_user(owner.id)

    try:
        media = await drive.get_media(record.remote_id)
    except UpstreamStreamError as e:
        logger.error("Could not open Drive stream for file %s: %s", record.id, e)
        return PlainTextResponse("Upstream stream error", status_code=502)

    return StreamingResponse(
        relay_media(media, record, chunk_size or config.STREAM_CHUNK_SIZE),
        headers=build_stream_headers(record),
    )
