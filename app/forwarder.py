"""Image forwarding to the upstream vision service."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from app.config import Settings
from app.modes import VisionMode, build_upstream_url

logger = logging.getLogger(__name__)

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"


class UpstreamUnreachableError(Exception):
    """Raised when the vision service is unreachable."""

    def __init__(self, message: str, upstream: str):
        self.message = message
        self.upstream = upstream
        super().__init__(message)


class UpstreamTimeoutError(Exception):
    """Raised when the vision service times out."""

    def __init__(self, message: str, upstream: str):
        self.message = message
        self.upstream = upstream
        super().__init__(message)


@dataclass(frozen=True)
class UpstreamReply:
    """Status code and raw body returned by the vision service."""

    status_code: int
    content: bytes

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError on malformed content."""
        return json.loads(self.content)


class VisionTransport(Protocol):
    """Outbound HTTP capability used by the proxy handler."""

    async def send(self, url: str, headers: dict[str, str], body: bytes) -> UpstreamReply:
        ...


class HttpxTransport:
    """VisionTransport backed by httpx, one client per call."""

    def __init__(self, timeout_s: float, connect_timeout_s: float):
        self.timeout = httpx.Timeout(timeout_s, connect=connect_timeout_s)

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpxTransport":
        return cls(
            timeout_s=settings.upstream_timeout_s,
            connect_timeout_s=settings.upstream_connect_timeout_s,
        )

    async def send(self, url: str, headers: dict[str, str], body: bytes) -> UpstreamReply:
        """
        POST a binary body and return the upstream reply.

        Raises:
            UpstreamUnreachableError: If connection to upstream fails
            UpstreamTimeoutError: If upstream request times out
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, content=body, headers=headers)
                return UpstreamReply(status_code=response.status_code, content=response.content)

        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                "Vision service did not respond in time",
                upstream=url,
            ) from e

        except (httpx.ConnectError, httpx.NetworkError) as e:
            raise UpstreamUnreachableError(
                f"Connection to vision service failed: {str(e)}",
                upstream=url,
            ) from e


async def forward_image(
    image_bytes: bytes,
    mode: VisionMode,
    settings: Settings,
    transport: VisionTransport,
) -> UpstreamReply:
    """
    Forward raw image bytes to the vision service.

    Args:
        image_bytes: Uploaded file content, sent unmodified
        mode: Selected vision capability
        settings: Application settings for endpoint and subscription key
        transport: Outbound HTTP capability

    Returns:
        UpstreamReply from the vision service

    Raises:
        UpstreamUnreachableError: If connection to upstream fails
        UpstreamTimeoutError: If upstream request times out
    """
    url = build_upstream_url(mode, settings)
    headers = {
        SUBSCRIPTION_KEY_HEADER: settings.vision_key,
        "Content-Type": "application/octet-stream",
    }
    logger.debug("Forwarding %d bytes to %s", len(image_bytes), url)
    return await transport.send(url, headers, image_bytes)
