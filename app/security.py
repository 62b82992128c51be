"""Request size limits for upload endpoints."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


class MaxBodySizeMiddleware(BaseHTTPMiddleware):
    """Reject uploads whose Content-Length exceeds a configured limit.

    Only enforced on POST requests to the guarded upload paths.
    """

    def __init__(self, app, max_bytes: int, guarded_paths: tuple[str, ...] = ("/api/vision",)) -> None:  # noqa: ANN001
        super().__init__(app)
        self.max_bytes = max_bytes
        self._guarded_paths = set(guarded_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "POST" and request.url.path in self._guarded_paths:
            content_length = request.headers.get("content-length")
            if content_length is not None:
                try:
                    too_large = int(content_length) > self.max_bytes
                except ValueError:
                    too_large = False  # non-integer content-length; let the form parser fail
                if too_large:
                    logger.warning("Rejected upload of %s bytes (limit %d)", content_length, self.max_bytes)
                    return JSONResponse(
                        status_code=413,
                        content={"error": f"Upload exceeds maximum allowed size ({self.max_bytes} bytes)"},
                    )

        return await call_next(request)
