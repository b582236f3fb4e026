"""Storage backend interface: get/put/put_from_path and signed GET URLs. Implementations: local (dev disk) or S3.

Every implementation must behave the same way for callers; the shared contract
tests in tests/test_storage_contract.py run against each of them. If you add a
behaviour to one backend, add it to the others too.
"""
from abc import ABC, abstractmethod
from os import PathLike

DEFAULT_EXPIRES_IN_MS = 60 * 60 * 1000  # 1 hour


class InvalidKeyError(ValueError):
    """Object key is empty, absolute, or escapes its dataset."""


def validate_key(key: str) -> str:
    """Return key unchanged if it is a safe relative object key; raise InvalidKeyError otherwise."""
    if not key or not isinstance(key, str):
        raise InvalidKeyError("Object key must be a non-empty string")
    if "\\" in key or any(ord(c) < 32 for c in key):
        raise InvalidKeyError(f"Object key contains forbidden characters: {key!r}")
    if key.startswith("/"):
        raise InvalidKeyError(f"Object key must be relative: {key!r}")
    for segment in key.split("/"):
        if segment in ("", ".", ".."):
            raise InvalidKeyError(f"Object key has an invalid path segment: {key!r}")
    return key


class StorageBackend(ABC):
    """Abstract storage for one dataset: raw bytes in, raw bytes out, plus temporary direct-access links."""

    implementation: str = ""

    def __init__(self, dataset: str) -> None:
        self.dataset = dataset

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the object's bytes, or None if it is missing or could not be read (logged)."""
        ...

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Write or overwrite the object. Errors propagate to the caller."""
        ...

    @abstractmethod
    async def put_from_path(self, key: str, source_path: str | PathLike) -> None:
        """Copy a file already on local disk into the object without reading it all into memory. Errors propagate."""
        ...

    @abstractmethod
    async def get_signed_url(self, key: str, expires_in_ms: int | None = DEFAULT_EXPIRES_IN_MS) -> str | None:
        """Return a URL a third party can fetch the object from directly. expires_in_ms=None asks for no expiry."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dataset={self.dataset!r})"
