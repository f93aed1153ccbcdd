"""
Matrix HTTP Client - Media Mixin
Provides file upload and download methods
"""

import asyncio
import logging
import mimetypes
from pathlib import Path

from ..constants import (
    MEDIA_API_PREFIX,
    ROOM_AVATAR_SIZE_512,
    THUMBNAIL_METHOD_CROP,
    USER_AVATAR_SIZE_128,
)
from ..errors import MediaUploadError
from .base import path_segment
from .decoding import decode_error, decode_json_object
from .responses import UploadResponse

logger = logging.getLogger("matrix_chat_client.media")

AUTHENTICATED_MEDIA_PREFIX = "/_matrix/client/v1/media"
DEFAULT_MIME_TYPE = "application/octet-stream"


def parse_mxc(mxc_url: str) -> tuple[str, str]:
    """
    Split an mxc:// URL into server name and media ID

    Raises:
        ValueError: When the URL is not a well-formed mxc URL
    """
    if not mxc_url.startswith("mxc://"):
        raise ValueError(f"Invalid MXC URL: {mxc_url}")
    parts = mxc_url[6:].split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid MXC URL format: {mxc_url}")
    return parts[0], parts[1]


def guess_mime_type(filename: str) -> str:
    mime, _ = mimetypes.guess_type(filename)
    return mime or DEFAULT_MIME_TYPE


class MediaMixin:
    """Media-related methods for Matrix client"""

    async def upload_media(
        self, data: bytes, content_type: str | None, filename: str
    ) -> UploadResponse:
        """
        Upload a file to the Matrix media repository

        Args:
            data: File data as bytes
            content_type: MIME type; guessed from filename when empty
            filename: Filename

        Returns:
            Upload response with content_uri

        Raises:
            MediaUploadError: With the HTTP status and a short reason
        """
        content_type = content_type or guess_mime_type(filename)
        raw = await self._send(
            "POST",
            f"{MEDIA_API_PREFIX}/upload",
            body=data,
            params={"filename": filename},
            content_type=content_type,
        )

        if raw.failed:
            error = decode_error(raw.status, raw.body, raw.reason)
            message = getattr(error, "error", "") or raw.reason or error.message
            logger.error(f"Media upload of {filename} failed: {error.message}")
            raise MediaUploadError(raw.status, f"Media upload failed - {message}")

        if not raw.body:
            raise MediaUploadError(raw.status, "Media upload failed - Empty response")

        result = decode_json_object(raw.body)
        if not result.ok:
            raise MediaUploadError(raw.status, "Media upload failed - Invalid response")

        content_uri = result.value.get("content_uri")
        if not isinstance(content_uri, str) or not content_uri:
            raise MediaUploadError(
                raw.status, "Media upload failed - Missing 'content_uri'"
            )

        logger.debug(f"Uploaded {filename} ({len(data)} bytes) as {content_uri}")
        return UploadResponse(
            content_uri=content_uri,
            mimetype=content_type,
            size=len(data),
            filename=filename,
        )

    async def upload_path(self, file_path: str | Path) -> UploadResponse:
        """Read a local file off the event loop and upload it"""
        path = Path(file_path)
        data = await asyncio.to_thread(path.read_bytes)
        return await self.upload_media(data, guess_mime_type(path.name), path.name)

    # The room-facing helpers mirror the message types they are sent as.
    async def upload_image(self, file_path: str | Path) -> UploadResponse:
        return await self.upload_path(file_path)

    async def upload_file(self, file_path: str | Path) -> UploadResponse:
        return await self.upload_path(file_path)

    async def upload_audio(self, file_path: str | Path) -> UploadResponse:
        return await self.upload_path(file_path)

    async def upload_video(self, file_path: str | Path) -> UploadResponse:
        return await self.upload_path(file_path)

    async def _get_media(self, endpoint: str, params: dict | None = None) -> bytes:
        raw = await self._send("GET", endpoint, params=params, content_type=None)
        if raw.failed:
            error = decode_error(raw.status, raw.body, raw.reason)
            logger.warning(f"Media request {endpoint} failed: {error.message}")
            raise error
        return raw.body

    async def download_media(self, mxc_url: str) -> bytes:
        """
        Download a file from the Matrix media repository

        Args:
            mxc_url: MXC URL (mxc://server/media_id)

        Returns:
            File data as bytes
        """
        server_name, media_id = parse_mxc(mxc_url)
        endpoint = (
            f"{AUTHENTICATED_MEDIA_PREFIX}/download/"
            f"{path_segment(server_name)}/{path_segment(media_id)}"
        )
        return await self._get_media(endpoint)

    async def get_thumbnail(
        self,
        mxc_url: str,
        width: int,
        height: int,
        method: str = THUMBNAIL_METHOD_CROP,
    ) -> bytes:
        """
        Get a thumbnail for media

        Args:
            mxc_url: MXC URL (mxc://server/media_id)
            width: Thumbnail width
            height: Thumbnail height
            method: crop or scale

        Returns:
            Thumbnail bytes
        """
        server_name, media_id = parse_mxc(mxc_url)
        endpoint = (
            f"{AUTHENTICATED_MEDIA_PREFIX}/thumbnail/"
            f"{path_segment(server_name)}/{path_segment(media_id)}"
        )
        params = {"width": width, "height": height, "method": method}
        return await self._get_media(endpoint, params=params)

    async def fetch_room_avatar(self, avatar_url: str) -> bytes:
        return await self.get_thumbnail(
            avatar_url, ROOM_AVATAR_SIZE_512, ROOM_AVATAR_SIZE_512
        )

    async def fetch_user_avatar(self, avatar_url: str) -> bytes:
        return await self.get_thumbnail(
            avatar_url, USER_AVATAR_SIZE_128, USER_AVATAR_SIZE_128
        )
