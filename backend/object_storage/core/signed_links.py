"""Signed-link gate for the local backend: enforce expiresAt, then serve the raw file statically.

LocalStorage.get_signed_url emits links under SIGNED_LINKS_PREFIX with an optional
expiresAt query param to mimic a cloud presigned URL expiring. This middleware is the
only place that expiry is checked; StaticFiles itself knows nothing about it.
"""
import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from object_storage.core.config import Settings
from object_storage.core.metrics import record_signed_link_rejected
from object_storage.services.storage.local import SIGNED_LINKS_PREFIX
from object_storage.services.storage.registry import StorageRegistry

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_expires_at(value: str) -> datetime | None:
    """Parse an ISO-8601 instant (Z or offset suffix; naive means UTC). Return None if unparseable."""
    v = value.strip()
    if v[-1:] in ("Z", "z"):
        v = v[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(v)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _is_signed_link(path: str) -> bool:
    return path == SIGNED_LINKS_PREFIX or path.startswith(SIGNED_LINKS_PREFIX + "/")


class SignedLinkGateMiddleware(BaseHTTPMiddleware):
    """404 when the local backend is not active; 403 once expiresAt has passed; else pass through."""

    def __init__(self, app, enabled: bool) -> None:
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if not _is_signed_link(request.url.path):
            return await call_next(request)
        # Never expose files through this route when another backend is in use
        if not self.enabled:
            return Response(status_code=404)
        expires_at_raw = request.query_params.get("expiresAt")
        if expires_at_raw:
            expires_at = parse_expires_at(expires_at_raw)
            if expires_at is None:
                logger.warning("Ignoring unparseable expiresAt %r on %s", expires_at_raw, request.url.path)
            elif utcnow() > expires_at:
                record_signed_link_rejected()
                return JSONResponse(status_code=403, content={"error": "Signed link expired!"})
        return await call_next(request)


def mount_signed_links(app: FastAPI, settings: Settings, registry: StorageRegistry) -> None:
    """Install the gate; mount the static file server only when the local backend is active."""
    enabled = registry.implementation == "local"
    app.add_middleware(SignedLinkGateMiddleware, enabled=enabled)
    if enabled:
        root = settings.local_object_storage_root
        root.mkdir(parents=True, exist_ok=True)
        app.mount(SIGNED_LINKS_PREFIX, StaticFiles(directory=root), name="local-object-signed-links")
