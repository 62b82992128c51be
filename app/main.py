"""FastAPI application entry point for the Vision Proxy."""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import UploadFile
from starlette.responses import JSONResponse

from app import __version__
from app.config import ConfigurationError, Settings, get_settings
from app.forwarder import HttpxTransport, VisionTransport, forward_image
from app.logging import RequestContextMiddleware, setup_logging
from app.modes import UnknownModeError, parse_mode
from app.schemas import ErrorResponse, HealthResponse
from app.security import MaxBodySizeMiddleware

logger = logging.getLogger(__name__)

NO_FILE_MESSAGE = "No file uploaded"
SERVER_ERROR_MESSAGE = "Server error"
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _load_settings_safe() -> Settings | None:
    """Load settings, returning None when config is unavailable (e.g. tests)."""
    try:
        return get_settings()
    except ConfigurationError:
        return None


def get_transport(settings: Settings = Depends(get_settings)) -> VisionTransport:
    """Bind the outbound capability to a real HTTP client."""
    return HttpxTransport.from_settings(settings)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


async def _configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Report unusable settings with the same body as any other server failure."""
    logger.error(f"Vision proxy is not configured: {exc}", exc_info=exc)
    return _error(500, SERVER_ERROR_MESSAGE)


def create_app() -> FastAPI:
    """Build and return the FastAPI application with all middleware configured."""
    settings = _load_settings_safe()

    if settings is not None:
        setup_logging(settings.log_level)

    application = FastAPI(
        title="Vision Proxy",
        description="Forwards uploaded images to a cloud vision analysis service",
        version=__version__,
    )

    application.add_exception_handler(ConfigurationError, _configuration_error_handler)

    # add_middleware wraps the existing stack, so the last one added runs first
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins_list if settings else [],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.add_middleware(
        MaxBodySizeMiddleware,
        max_bytes=settings.max_upload_bytes if settings else 4_000_000,
    )
    application.add_middleware(RequestContextMiddleware)

    return application


app = create_app()


@app.get("/health")
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(ok=True, version=__version__)


@app.post("/api/vision")
async def vision(
    request: Request,
    settings: Settings = Depends(get_settings),
    transport: VisionTransport = Depends(get_transport),
) -> JSONResponse:
    """
    Forward an uploaded image to the vision service.

    Expects multipart/form-data with a required ``file`` part and an optional
    ``mode`` field (analyze, detect, describe, ocr). The upstream status code
    and JSON body are relayed unchanged.

    Failures always carry an ``{"error": ...}`` body:

    - 400 when no file is uploaded, or for an unknown mode with
      VISION_STRICT_MODE enabled
    - 413 when Content-Length exceeds MAX_UPLOAD_BYTES (from
      MaxBodySizeMiddleware, before this handler runs)
    - 500 ``Server error`` for anything else, including a non-form body,
      an unreachable or non-JSON upstream, and missing configuration
    """
    try:
        content_type = request.headers.get("content-type", "").lower()
        if not content_type.startswith(FORM_CONTENT_TYPES):
            raise ValueError(f"Expected a form body, got content type {content_type or 'none'!r}")

        async with request.form() as form:
            upload = form.get("file")
            if not isinstance(upload, UploadFile):
                return _error(400, NO_FILE_MESSAGE)

            raw_mode = form.get("mode")
            try:
                mode = parse_mode(
                    raw_mode if isinstance(raw_mode, str) else None,
                    strict=settings.vision_strict_mode_bool,
                )
            except UnknownModeError as e:
                return _error(400, str(e))

            image_bytes = await upload.read()

        reply = await forward_image(image_bytes, mode, settings, transport)
        payload = reply.json()

        return JSONResponse(status_code=reply.status_code, content=payload)

    except Exception as e:
        upstream = getattr(e, "upstream", None)
        if upstream:
            logger.exception(f"Vision request to {upstream} failed: {e}")
        else:
            logger.exception(f"Vision request failed: {e}")
        return _error(500, SERVER_ERROR_MESSAGE)
