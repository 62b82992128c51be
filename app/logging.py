"""Request-scoped logging: a request ID on every record and one access line per request."""

import logging
import logging.config
import re
import sys
import time
import uuid
from contextvars import ContextVar
from typing import TextIO

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s - %(message)s"

# Caller-supplied IDs are reused only when they are short, printable tokens
_ACCEPTED_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

current_request_id: ContextVar[str] = ContextVar("current_request_id", default="-")

access_logger = logging.getLogger("app.access")


class RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id.get()  # type: ignore[attr-defined]
        return True


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def resolve_request_id(incoming: str | None) -> str:
    """Reuse an upstream proxy's request ID when it is well-formed, else mint one."""
    if incoming and _ACCEPTED_REQUEST_ID.match(incoming):
        return incoming
    return new_request_id()


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Configure root logging for the proxy.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Destination stream, stderr when omitted.
    """
    level = level.upper()
    # httpx logs every outbound request at INFO
    client_level = logging.getLevelName(max(logging.getLevelName(level), logging.WARNING))

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_id": {"()": RequestIDFilter}},
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": stream or sys.stderr,
                    "formatter": "default",
                    "filters": ["request_id"],
                }
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                "httpx": {"level": client_level},
                "httpcore": {"level": client_level},
            },
        }
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID for the duration of each request.

    The ID is exposed on ``request.state.request_id``, stamped on every log
    record, echoed in the ``X-Request-ID`` response header and written to a
    single access line once the response is ready.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        token = current_request_id.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            access_logger.info(
                "%s %s %s %.0fms",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            current_request_id.reset(token)
