"""Dropbox file-sync client for listing, downloading and uploading images."""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

import httpx

from photo_curator.adapters.http_errors import send
from photo_curator.domain.errors import PermanentRemoteError, TransientRemoteError
from photo_curator.domain.photos import RemoteFile

_logger = logging.getLogger(__name__)

_IMAGE_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|bmp|webp)$", re.IGNORECASE)
_TOKEN_REFRESH_MARGIN = timedelta(minutes=5)
_LIST_PAGE_SIZE = 2000


class SyncClient(Protocol):
    """Interface for the file-sync backend."""

    async def list_images(
        self,
        folder: str,
        exclusions: set[str],
        *,
        day: date | None = None,
    ) -> list[RemoteFile]:
        """List image files in a folder, optionally for one server-modified day."""

    async def download(self, file: RemoteFile) -> bytes:
        """Download a file's bytes."""

    async def upload(self, content: bytes, path: str) -> str:
        """Upload bytes to a path, overwriting, and return the stored path."""


@dataclass
class HttpxDropboxClient(SyncClient):
    """Dropbox API v2 client implemented with httpx."""

    client_id: str
    client_secret: str
    refresh_token: str
    http_client: httpx.AsyncClient
    access_token: str | None = None
    expires_at: datetime | None = None
    min_request_interval: float = 0.2
    api_url: str = "https://api.dropboxapi.com"
    content_url: str = "https://content.dropboxapi.com"
    _last_request: float = field(default=0.0, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @classmethod
    def create(
        cls, client_id: str, client_secret: str, refresh_token: str
    ) -> "HttpxDropboxClient":
        """Create a Dropbox client with a managed httpx session."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
            http_client=httpx.AsyncClient(),
        )

    async def list_images(
        self,
        folder: str,
        exclusions: set[str],
        *,
        day: date | None = None,
    ) -> list[RemoteFile]:
        """List image files recursively, following pagination cursors."""
        excluded = {name.lower() for name in exclusions}
        images: list[RemoteFile] = []
        cursor: str | None = None
        has_more = True
        while has_more:
            try:
                if cursor:
                    page = await self._api_call(
                        "/2/files/list_folder/continue", {"cursor": cursor}
                    )
                else:
                    page = await self._api_call(
                        "/2/files/list_folder",
                        {
                            "path": folder,
                            "recursive": True,
                            "limit": _LIST_PAGE_SIZE,
                            "include_media_info": True,
                        },
                    )
            except PermanentRemoteError as exc:
                if exc.status_code == 409 and "path_not_found" in str(exc):  # noqa: PLR2004
                    _logger.warning("Folder not found: %s", folder)
                    return []
                raise
            for entry in page.get("entries", []):
                remote = _parse_entry(entry)
                if remote is None or remote.name.lower() in excluded:
                    continue
                if day is not None and remote.server_modified.date() != day:
                    continue
                images.append(remote)
            has_more = bool(page.get("has_more"))
            cursor = page.get("cursor")

        _logger.info(
            "Listed %s image(s) in %s%s",
            len(images),
            folder,
            f" for {day.isoformat()}" if day else "",
        )
        return images

    async def download(self, file: RemoteFile) -> bytes:
        """Download a file's bytes, rejecting empty or corrupted bodies."""
        headers = await self._headers()
        headers["Dropbox-API-Arg"] = json.dumps({"path": file.path})
        response = await send(
            self.http_client,
            "POST",
            f"{self.content_url}/2/files/download",
            service="dropbox",
            headers=headers,
            timeout=60,
        )
        content = response.content
        if not content:
            raise TransientRemoteError(
                f"Empty file received for {file.path}", service="dropbox"
            )
        received_hash = _result_hash(response)
        if file.content_hash and received_hash != file.content_hash:
            raise TransientRemoteError(
                f"Content hash mismatch for {file.path}", service="dropbox"
            )
        return content

    async def upload(self, content: bytes, path: str) -> str:
        """Upload bytes to a path, overwriting any existing file."""
        headers = await self._headers()
        headers["Dropbox-API-Arg"] = json.dumps(
            {"path": path, "mode": "overwrite", "autorename": False, "mute": True}
        )
        headers["Content-Type"] = "application/octet-stream"
        response = await send(
            self.http_client,
            "POST",
            f"{self.content_url}/2/files/upload",
            service="dropbox",
            headers=headers,
            content=content,
            timeout=60,
        )
        return str(response.json().get("path_display", path))

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def refresh_access_token(self) -> None:
        """Exchange the refresh token for a fresh access token."""
        response = await send(
            self.http_client,
            "POST",
            f"{self.api_url}/oauth2/token",
            service="dropbox",
            data={
                "grant_type": "refresh_token",
                "refresh_token": self.refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            timeout=10,
        )
        payload = response.json()
        self.access_token = payload["access_token"]
        self.expires_at = datetime.now(tz=UTC) + timedelta(
            seconds=int(payload.get("expires_in", 14400))
        )
        _logger.info("Refreshed Dropbox access token")

    async def _api_call(self, path: str, body: dict[str, object]) -> dict[str, object]:
        headers = await self._headers()
        response = await send(
            self.http_client,
            "POST",
            f"{self.api_url}{path}",
            service="dropbox",
            headers=headers,
            json=body,
            timeout=30,
        )
        return response.json()

    async def _headers(self) -> dict[str, str]:
        async with self._lock:
            if (
                self.access_token is None
                or self.expires_at is None
                or self.expires_at - datetime.now(tz=UTC) < _TOKEN_REFRESH_MARGIN
            ):
                await self.refresh_access_token()
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.min_request_interval:
                await asyncio.sleep(self.min_request_interval - elapsed)
            self._last_request = time.monotonic()
        return {"Authorization": f"Bearer {self.access_token}"}


def _parse_entry(entry: dict[str, object]) -> RemoteFile | None:
    if entry.get(".tag") != "file":
        return None
    path = str(entry.get("path_lower") or "")
    if not _IMAGE_PATTERN.search(path):
        return None
    return RemoteFile(
        id=str(entry["id"]),
        name=str(entry["name"]),
        path=path,
        size=int(entry.get("size") or 0),
        server_modified=_parse_timestamp(str(entry["server_modified"])),
        content_hash=entry.get("content_hash"),  # type: ignore[arg-type]
    )


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _result_hash(response: httpx.Response) -> str | None:
    raw = response.headers.get("Dropbox-API-Result")
    if not raw:
        return None
    try:
        return json.loads(raw).get("content_hash")
    except (json.JSONDecodeError, AttributeError):
        return None
