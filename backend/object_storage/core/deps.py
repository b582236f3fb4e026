"""FastAPI dependencies: storage registry, per-dataset backends, metrics guard."""
from fastapi import Depends, Header, HTTPException, Request, status

from object_storage.core.config import Settings
from object_storage.services.storage.base import StorageBackend
from object_storage.services.storage.registry import FLOORPLANS, PROFILE_IMAGES, StorageRegistry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_registry(request: Request) -> StorageRegistry:
    """Registry built once in create_app."""
    return request.app.state.storage


def get_profile_images_storage(registry: StorageRegistry = Depends(get_storage_registry)) -> StorageBackend:
    return registry.get(PROFILE_IMAGES)


def get_floorplans_storage(registry: StorageRegistry = Depends(get_storage_registry)) -> StorageBackend:
    return registry.get(FLOORPLANS)


def require_metrics_access(
    settings: Settings = Depends(get_app_settings),
    x_metrics_secret: str | None = Header(None, alias="X-Metrics-Secret"),
) -> None:
    """Allow /metrics if no secret is configured (local) or X-Metrics-Secret matches."""
    if settings.metrics_secret and x_metrics_secret != settings.metrics_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Metrics-Secret",
        )
