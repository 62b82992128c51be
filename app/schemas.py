"""Minimal response schemas."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body returned on every failure path."""

    error: str = Field(description="Human-readable error message")


class HealthResponse(BaseModel):
    """Response for /health."""

    ok: bool = Field(description="Service is up")
    version: str = Field(description="Service version")
