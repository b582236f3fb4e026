"""Dataset registry: one storage backend per dataset, bound once at startup and kept on app.state."""
from dataclasses import dataclass

from object_storage.core.config import Settings
from object_storage.services.storage import select_backend
from object_storage.services.storage.base import StorageBackend

PROFILE_IMAGES = "profileimages"
FLOORPLANS = "floorplans"
DATASETS = (PROFILE_IMAGES, FLOORPLANS)


@dataclass(frozen=True)
class StorageRegistry:
    """Backends for every known dataset. Immutable: rebinding requires a restart."""

    implementation: str
    profile_images: StorageBackend
    floorplans: StorageBackend

    def get(self, dataset: str) -> StorageBackend:
        """Return the backend bound to dataset. Raise KeyError for unknown datasets."""
        if dataset == PROFILE_IMAGES:
            return self.profile_images
        if dataset == FLOORPLANS:
            return self.floorplans
        raise KeyError(dataset)


def build_registry(settings: Settings) -> StorageRegistry:
    """Select the backend class once, then bind one instance per dataset."""
    backend_cls = select_backend(settings.object_storage_implementation)
    return StorageRegistry(
        implementation=backend_cls.implementation,
        profile_images=backend_cls(PROFILE_IMAGES, settings),
        floorplans=backend_cls(FLOORPLANS, settings),
    )
