"""Abstract PDF uploads to Firebase Storage.

Uses the storage REST endpoint directly: a media upload returns the object
metadata including ``downloadTokens``, from which the durable public download
URL is built (the same URL the web SDK's ``getDownloadURL`` hands out).
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from ..core.config import get_config
from ..core.errors import UploadError
from ..utils.http import get_client, log_response
from ..utils.log import get_logger

log = get_logger(__name__)

STORAGE_API = "https://firebasestorage.googleapis.com/v0/b"
CHUNK_SIZE = 256 * 1024

ProgressCallback = Callable[[int, int], None]


def object_name(prefix: str, filename: str) -> str:
    """Storage key for a file: the fixed prefix plus the original file name."""
    return f"{prefix}{Path(filename).name}"


def download_url(bucket: str, name: str, token: str) -> str:
    return f"{STORAGE_API}/{bucket}/o/{quote(name, safe='')}?alt=media&token={token}"


async def _iter_chunks(
    data: bytes, on_progress: ProgressCallback | None
) -> AsyncIterator[bytes]:
    total = len(data)
    sent = 0
    if on_progress:
        on_progress(0, total)
    for start in range(0, total, CHUNK_SIZE):
        chunk = data[start : start + CHUNK_SIZE]
        sent += len(chunk)
        yield chunk
        if on_progress:
            on_progress(sent, total)


class ObjectStorage:
    """Upload-then-resolve-URL capability over one bucket."""

    def __init__(
        self,
        bucket: str | None = None,
        client: httpx.AsyncClient | None = None,
        auth_token: str | None = None,
    ) -> None:
        config = get_config()
        self.bucket = bucket or config.storage_bucket
        token = auth_token if auth_token is not None else config.storage_token
        headers = {"Authorization": f"Bearer {token}"} if token else None
        self._owns_client = client is None
        self._client = client or get_client(timeout=config.http_timeout * 4, headers=headers)
        self._auth_headers = headers or {}

    async def __aenter__(self) -> "ObjectStorage":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def upload_bytes(
        self,
        name: str,
        data: bytes,
        content_type: str = "application/pdf",
        on_progress: ProgressCallback | None = None,
        action: str = "upload abstract",
    ) -> str:
        """
        Upload a blob and return its durable download URL.

        Args:
            name: Full object name, prefix included (e.g. ``Abstract/paper.pdf``)
            data: File content
            content_type: MIME type stored with the object
            on_progress: Called with (bytes_sent, total_bytes) while streaming
            action: Action name reported on failure

        Raises:
            UploadError: The store rejected the object, the connection failed,
                or the response carried no download token.
        """
        url = f"{STORAGE_API}/{self.bucket}/o"
        headers = {
            **self._auth_headers,
            "Content-Type": content_type,
            "Content-Length": str(len(data)),
        }
        log.info("storage_upload_started", name=name, size=len(data), bucket=self.bucket)

        try:
            resp = await self._client.post(
                url,
                params={"uploadType": "media", "name": name},
                content=_iter_chunks(data, on_progress),
                headers=headers,
            )
        except httpx.HTTPError as e:
            log.error("storage_network_error", name=name, error=str(e), error_type=type(e).__name__)
            raise UploadError(action, f"upload of {name} failed: {e}", object_name=name) from e

        log_response(resp, action=action, object_name=name)
        if not resp.is_success:
            raise UploadError(
                action,
                f"storage rejected {name} (HTTP {resp.status_code})",
                object_name=name,
            )

        try:
            meta: dict[str, Any] = resp.json()
        except ValueError as e:
            raise UploadError(action, f"unreadable storage response for {name}", object_name=name) from e

        token = str(meta.get("downloadTokens") or "").split(",")[0]
        if not token:
            log.error("storage_missing_download_token", name=name, metadata_keys=list(meta))
            raise UploadError(action, f"no download token returned for {name}", object_name=name)

        resolved = download_url(self.bucket, meta.get("name", name), token)
        log.info("storage_upload_completed", name=name, url=resolved)
        return resolved

    async def upload_file(
        self,
        prefix: str,
        path: Path,
        on_progress: ProgressCallback | None = None,
        action: str = "upload abstract",
    ) -> str:
        """Read ``path`` off the event loop and upload it under ``prefix``."""
        name = object_name(prefix, path.name)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            log.error("storage_file_read_failed", path=str(path), error=str(e))
            raise UploadError(action, f"cannot read {path}: {e}", object_name=name) from e
        return await self.upload_bytes(name, data, on_progress=on_progress, action=action)
