"""FastAPI app: storage registry, signed-link gate, routers."""
import logging
import sys

from fastapi import Depends, FastAPI
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError

from object_storage.core.config import Settings, get_settings
from object_storage.core.deps import require_metrics_access
from object_storage.core.metrics import get_metrics
from object_storage.core.request_logging import RequestLoggingMiddleware
from object_storage.core.signed_links import mount_signed_links
from object_storage.services.storage.registry import build_registry
from object_storage.api.profile_images import router as profile_images_router
from object_storage.api.floorplans import router as floorplans_router

logger = logging.getLogger(__name__)


def _configure_request_logging(settings: Settings) -> None:
    request_logger = logging.getLogger("object_storage.request")
    if settings.log_json:
        for h in request_logger.handlers[:]:
            request_logger.removeHandler(h)
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("%(message)s"))
        request_logger.addHandler(h)
        request_logger.propagate = False
    request_logger.setLevel(logging.INFO)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app. Storage bindings are created here, once, and live on app.state."""
    settings = settings or get_settings()
    _configure_request_logging(settings)

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.state.settings = settings
    app.state.storage = build_registry(settings)
    logger.info("Object storage implementation: %s", app.state.storage.implementation)

    mount_signed_links(app, settings, app.state.storage)
    # Added last so it is outermost and also logs gate rejections
    app.add_middleware(RequestLoggingMiddleware, log_json=settings.log_json)

    app.include_router(profile_images_router)
    app.include_router(floorplans_router)

    @app.get("/", response_class=PlainTextResponse)
    async def index():
        return settings.app_name

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/healthz")
    async def healthz():
        """Liveness: no storage access."""
        return {"status": "ok"}

    @app.get("/metrics", response_class=Response)
    async def metrics(_: None = Depends(require_metrics_access)):
        body, content_type = get_metrics()
        return Response(content=body, media_type=content_type)

    return app


def main() -> None:
    """Console entry point: validate config (exit 1 if invalid), then serve with uvicorn."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error("Invalid configuration:\n%s", e)
        sys.exit(1)
    try:
        app = create_app(settings)
    except ValueError as e:
        logger.error("Invalid object storage configuration: %s", e)
        sys.exit(1)
    logger.info("Listening on port %d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
