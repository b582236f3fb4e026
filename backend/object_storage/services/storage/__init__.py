"""Storage backend selector: local (dev disk) or S3. S3 backend is loaded only when selected (no boto3 in local)."""
import logging

from object_storage.services.storage.base import DEFAULT_EXPIRES_IN_MS, InvalidKeyError, StorageBackend
from object_storage.services.storage.local import LocalStorage

logger = logging.getLogger(__name__)

IMPLEMENTATIONS = ("local", "s3")
# Another provider (azure, gcs, ...) would be added here and in select_backend.


def select_backend(implementation: str | None) -> type[StorageBackend]:
    """Return the backend class for the configured implementation. Unknown values fall back to LocalStorage."""
    name = (implementation or "").strip().lower()
    if name == "s3":
        from object_storage.services.storage.s3 import S3Storage
        return S3Storage
    if name != "local":
        logger.warning(
            "Unknown object storage implementation %r (expected one of %s); falling back to local",
            implementation,
            ", ".join(IMPLEMENTATIONS),
        )
    return LocalStorage


__all__ = [
    "DEFAULT_EXPIRES_IN_MS",
    "IMPLEMENTATIONS",
    "InvalidKeyError",
    "LocalStorage",
    "StorageBackend",
    "select_backend",
]
