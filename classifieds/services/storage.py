from __future__ import annotations

import asyncio
import mimetypes
import uuid
from pathlib import Path
from urllib.parse import urlparse

from classifieds.core.errors import BlobNotFoundError, BlobStoreError


class LocalBlobStore:
    """
    Filesystem blob store. Keys live under base_dir and are served by the API
    under public_base_url (StaticFiles mount), so the returned URL is fetchable.
    """

    def __init__(self, base_dir: str, public_base_url: str = "/media"):
        self.base = Path(base_dir).resolve()
        self.base.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _key_for(self, path_hint: str, mime_type: str) -> str:
        ext = mimetypes.guess_extension(mime_type) or ".bin"
        hint = path_hint.strip("/")
        # uuid suffix keeps two uploads with the same hint apart
        return f"{hint}-{uuid.uuid4().hex[:8]}{ext}"

    def _write(self, key: str, data: bytes) -> None:
        path = self.base / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def upload(self, path_hint: str, data: bytes, mime_type: str) -> str:
        key = self._key_for(path_hint, mime_type)
        try:
            await asyncio.to_thread(self._write, key, data)
        except OSError as e:
            raise BlobStoreError(f"could not store {key}: {e}") from e
        return f"{self.public_base_url}/{key}"

    def resolve_path(self, url: str) -> Path:
        """
        Resolve a blob URL to a local filesystem path.

        Supports:
          - URLs under public_base_url (absolute or path-only)
          - file:///absolute/path inside base_dir
          - relative keys (resolved under self.base)
        """
        parsed = urlparse(url)

        if parsed.scheme == "file":
            path = Path(parsed.path)
        elif parsed.scheme in ("", "http", "https"):
            prefix = self.public_base_url + "/"
            if parsed.path.startswith(prefix):
                path = self.base / parsed.path[len(prefix):]
            elif parsed.scheme == "" and not parsed.path.startswith("/"):
                path = self.base / parsed.path
            else:
                raise BlobStoreError(f"URL is not managed by this store: {url}")
        else:
            raise BlobStoreError(f"Unsupported storage scheme: {parsed.scheme}")

        path = path.resolve()
        if not path.is_relative_to(self.base):
            raise BlobStoreError(f"URL escapes the storage root: {url}")
        return path

    def key_of(self, url: str) -> str | None:
        try:
            path = self.resolve_path(url)
        except BlobStoreError:
            return None
        return path.relative_to(self.base).as_posix()

    async def delete(self, url: str) -> None:
        path = self.resolve_path(url)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            # already gone
            return
        except OSError as e:
            raise BlobStoreError(f"could not delete {url}: {e}") from e

    async def read(self, url: str) -> bytes:
        path = self.resolve_path(url)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise BlobNotFoundError(url) from e
