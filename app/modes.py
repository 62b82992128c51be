"""Mode dispatch - maps the client's mode selector onto vision service paths."""

import logging
from enum import Enum

from app.config import Settings

logger = logging.getLogger(__name__)


class UnknownModeError(ValueError):
    """Raised in strict mode when the client sends an unrecognized mode."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Unknown mode: {mode}")


class VisionMode(str, Enum):
    """Vision service capability selected by the client."""

    ANALYZE = "analyze"
    DETECT = "detect"
    DESCRIBE = "describe"
    OCR = "ocr"

    def path_segment(self, analyze_features: str) -> str:
        """Return the path (and query) appended to the versioned API root."""
        if self is VisionMode.ANALYZE:
            return f"analyze?visualFeatures={analyze_features}"
        return self.value


def parse_mode(value: str | None, strict: bool = False) -> VisionMode:
    """
    Resolve a raw form value into a VisionMode.

    Absent or empty values select ANALYZE. Unrecognized values also select
    ANALYZE unless ``strict`` is set, in which case UnknownModeError is raised.

    Args:
        value: Raw ``mode`` form field, if any
        strict: Reject unrecognized values instead of falling back

    Returns:
        The resolved VisionMode

    Raises:
        UnknownModeError: If strict and the value is not a known mode
    """
    if not value:
        return VisionMode.ANALYZE
    try:
        return VisionMode(value)
    except ValueError:
        if strict:
            raise UnknownModeError(value) from None
        logger.debug("Unrecognized mode %r, falling back to analyze", value)
        return VisionMode.ANALYZE


def build_upstream_url(mode: VisionMode, settings: Settings) -> str:
    """
    Build the fully-qualified vision service URL for a mode.

    Args:
        mode: Selected vision capability
        settings: Application settings holding the endpoint and API version

    Returns:
        URL string, e.g. ``https://host/vision/v3.2/detect``
    """
    base = settings.vision_endpoint.rstrip("/")
    segment = mode.path_segment(settings.vision_analyze_features)
    return f"{base}/vision/{settings.vision_api_version}/{segment}"
