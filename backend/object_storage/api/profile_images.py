"""Profile images: proxy get/put straight through object storage."""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse, Response

from object_storage.core.deps import get_profile_images_storage
from object_storage.services.storage.base import InvalidKeyError, StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile-images", tags=["profile-images"])


@router.get("/{key}")
async def get_profile_image(key: str, storage: StorageBackend = Depends(get_profile_images_storage)):
    data = await storage.get(key)
    if data is None:
        return PlainTextResponse(f"Unknown profile image {key}!", status_code=status.HTTP_404_NOT_FOUND)
    return Response(content=data, media_type="image/png")


@router.put("/{key}", status_code=204)
async def put_profile_image(
    key: str,
    request: Request,
    storage: StorageBackend = Depends(get_profile_images_storage),
):
    body = await request.body()
    try:
        await storage.put(key, body)
    except InvalidKeyError as e:
        return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)
    except Exception:
        logger.exception("Failed to put profile image %s", key)
        return PlainTextResponse("Error putting profile image!", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
