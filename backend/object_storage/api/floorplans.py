"""Floorplans: hand out signed URLs so file traffic goes to the object store, not through this app."""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse, Response

from object_storage.api.schemas import FloorplanResponse
from object_storage.core.deps import get_floorplans_storage
from object_storage.core.logging_redaction import redact_url
from object_storage.core.metrics import record_signed_url_mint
from object_storage.services.storage.base import InvalidKeyError, StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/floorplans", tags=["floorplans"])


def _floorplan_key(floorplan_id: str) -> str:
    return f"{floorplan_id}.svg"


@router.get("/{floorplan_id}", response_model=FloorplanResponse)
async def get_floorplan(floorplan_id: str, storage: StorageBackend = Depends(get_floorplans_storage)):
    signed_url = await storage.get_signed_url(_floorplan_key(floorplan_id))
    if signed_url is None:
        return PlainTextResponse(
            f"Cannot find floorplan image for key {floorplan_id}!",
            status_code=status.HTTP_404_NOT_FOUND,
        )
    record_signed_url_mint(storage.dataset, storage.implementation)
    logger.debug("Minted floorplan link %s", redact_url(signed_url))
    return FloorplanResponse(id=floorplan_id, image_signed_url=signed_url)


@router.put("/{floorplan_id}", status_code=204)
async def put_floorplan(
    floorplan_id: str,
    request: Request,
    storage: StorageBackend = Depends(get_floorplans_storage),
):
    body = await request.body()
    try:
        await storage.put(_floorplan_key(floorplan_id), body)
    except InvalidKeyError as e:
        return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)
    except Exception:
        logger.exception("Failed to put floorplan %s", floorplan_id)
        return PlainTextResponse("Error putting floorplan!", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
