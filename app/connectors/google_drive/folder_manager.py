"""
Folder Management for Google Drive.

Locates the single well-known folder that holds uploaded files.
"""

import logging
import warnings

from app.config import config

from .client import FOLDER_MIME_TYPE
from .client_factory import AuthorizedDriveClient
from .errors import FolderRaceWarning

logger = logging.getLogger(__name__)


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


async def resolve_cloud_folder(
    client: AuthorizedDriveClient,
    folder_name: str | None = None,
) -> str:
    """
    Find the non-trashed upload folder by exact name, creating it if absent.

    The lookup is not transactional: two concurrent first uploads can both
    create the folder. Later lookups then pick whichever Drive lists first and
    emit a FolderRaceWarning.

    Args:
        client: Authorized Drive handle of the uploading user
        folder_name: Folder name, defaults to config.DRIVE_FOLDER_NAME

    Returns:
        The folder's Drive id
    """
    folder_name = folder_name or config.DRIVE_FOLDER_NAME
    query = " and ".join(
        [
            f"mimeType = '{FOLDER_MIME_TYPE}'",
            f"name = '{_escape_query_value(folder_name)}'",
            "trashed = false",
        ]
    )

    folders, _ = await client.list_files(query=query, fields="files(id, name)")

    if folders:
        if len(folders) > 1:
            message = (
                f"{len(folders)} folders named '{folder_name}' found for user "
                f"{client.user_id}; using {folders[0]['id']}"
            )
            logger.warning(message)
            warnings.warn(message, FolderRaceWarning, stacklevel=2)
        return folders[0]["id"]

    folder = await client.create_folder(folder_name)
    logger.info("Created Drive folder '%s' (%s) for user %s", folder_name, folder["id"], client.user_id)
    return folder["id"]
