"""Local (dev disk) storage: files under {root}/{dataset}/{key}; signed URLs carry an expiresAt query param."""
import logging
from datetime import datetime, timedelta, timezone
from os import PathLike
from pathlib import Path
from urllib.parse import quote, urlencode
from uuid import uuid4

import aiofiles
import aiofiles.os

from object_storage.core.config import Settings, get_settings
from object_storage.core.metrics import record_storage_error
from object_storage.services.storage.base import (
    DEFAULT_EXPIRES_IN_MS,
    InvalidKeyError,
    StorageBackend,
    validate_key,
)

logger = logging.getLogger(__name__)

SIGNED_LINKS_PREFIX = "/local-object-signed-links"
_COPY_CHUNK_SIZE = 256 * 1024
_LATEST_EXPIRES_AT = datetime.max.replace(tzinfo=timezone.utc)
_EARLIEST_EXPIRES_AT = datetime.min.replace(tzinfo=timezone.utc)


def format_expires_at(expires_at: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix, e.g. 2024-01-01T00:00:00.000Z."""
    return expires_at.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _expires_at(expires_in_ms: int) -> datetime:
    """now + expires_in_ms, clamped to the representable datetime range."""
    try:
        return datetime.now(timezone.utc) + timedelta(milliseconds=expires_in_ms)
    except OverflowError:
        return _LATEST_EXPIRES_AT if expires_in_ms > 0 else _EARLIEST_EXPIRES_AT


class LocalStorage(StorageBackend):
    """Dev disk storage: one subdirectory per dataset; signed URLs point at the local signed-links route."""

    implementation = "local"

    def __init__(self, dataset: str, settings: Settings | None = None) -> None:
        super().__init__(dataset)
        settings = settings or get_settings()
        self._root = settings.local_object_storage_root
        self._public_base_url = settings.public_base_url.rstrip("/")
        logger.info("LocalStorage in use for %s (%s)", dataset, self._root / dataset)

    def _path(self, key: str) -> Path:
        return self._root / self.dataset / validate_key(key)

    async def get(self, key: str) -> bytes | None:
        try:
            path = self._path(key)
        except InvalidKeyError:
            logger.warning("Rejected unsafe key %r for %s", key, self.dataset)
            return None
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            logger.debug("Object not found: %s/%s", self.dataset, key)
            return None
        except OSError:
            logger.exception("Failed to read %s/%s", self.dataset, key)
            record_storage_error(self.dataset, "get")
            return None

    async def _write_atomically(self, path: Path, chunks) -> None:
        """Write into a sibling temp file, then rename over path so readers never see a partial object."""
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp, "wb") as f:
                async for chunk in chunks:
                    await f.write(chunk)
            await aiofiles.os.replace(tmp, path)
        finally:
            if await aiofiles.os.path.exists(tmp):
                await aiofiles.os.remove(tmp)

    async def put(self, key: str, data: bytes) -> None:
        path = self._path(key)

        async def _chunks():
            yield data

        await self._write_atomically(path, _chunks())
        logger.debug("Stored %s/%s (%d bytes)", self.dataset, key, len(data))

    async def put_from_path(self, key: str, source_path: str | PathLike) -> None:
        path = self._path(key)
        async with aiofiles.open(source_path, "rb") as src:

            async def _chunks():
                while True:
                    chunk = await src.read(_COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk

            await self._write_atomically(path, _chunks())
        logger.debug("Copied %s to %s/%s", source_path, self.dataset, key)

    async def get_signed_url(self, key: str, expires_in_ms: int | None = DEFAULT_EXPIRES_IN_MS) -> str | None:
        # NOTE: expiresAt is plain client-visible data, so anyone can edit or drop it.
        # For on-premise production use, store the expiry server-side (redis / a
        # database) under an opaque token and put only that token in the URL.
        try:
            validate_key(key)
        except InvalidKeyError:
            logger.warning("Rejected unsafe key %r for %s", key, self.dataset)
            return None
        url = f"{self._public_base_url}{SIGNED_LINKS_PREFIX}/{quote(self.dataset)}/{quote(key)}"
        if expires_in_ms is not None:
            expires_at = _expires_at(expires_in_ms)
            url += "?" + urlencode({"expiresAt": format_expires_at(expires_at)}, safe=":")
        return url
