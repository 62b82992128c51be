"""Configuration management - loads environment variables into typed settings."""

from functools import lru_cache
from urllib.parse import urlparse

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ANALYZE_FEATURES = "Categories,Description,Objects,Tags,Color"


class ConfigurationError(ValueError):
    """Raised when settings cannot be loaded from the environment."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Server Configuration
    gateway_host: str = Field(default="127.0.0.1", description="Host for the proxy to listen on")
    gateway_port: int = Field(default=8090, description="Port for the proxy to listen on")

    # Vision Service
    vision_endpoint: str = Field(
        description="Base endpoint of the vision service (e.g., https://<name>.cognitiveservices.azure.com)",
    )
    vision_key: str = Field(
        validation_alias=AliasChoices("vision_key", "azure_key"),
        description="Subscription key sent as Ocp-Apim-Subscription-Key",
    )
    vision_api_version: str = Field(
        default="v3.2",
        description="Vision REST API version segment",
    )
    vision_analyze_features: str = Field(
        default=DEFAULT_ANALYZE_FEATURES,
        description="Comma-separated visualFeatures requested by the analyze mode",
    )
    vision_strict_mode: str = Field(
        default="0",
        description="Reject unknown mode values with 400 (1 = enabled, 0 = fall back to analyze)",
    )

    # Timeout Configuration
    upstream_timeout_s: float = Field(
        default=300.0,
        description="Read timeout for vision service requests (seconds)",
    )
    upstream_connect_timeout_s: float = Field(
        default=10.0,
        description="Connection timeout for vision service requests (seconds)",
    )

    # Request Limits
    max_upload_bytes: int = Field(
        default=4_000_000,
        description="Maximum accepted request body size for /api/vision (bytes)",
    )
    allow_origins: str = Field(
        default="",
        description="CORS allowed origins (comma-separated list, empty = no CORS)",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    @field_validator("gateway_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError(f"gateway_port must be between 1 and 65535, got {v}")
        return v

    @field_validator("upstream_timeout_s", "upstream_connect_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v

    @field_validator("max_upload_bytes")
    @classmethod
    def validate_max_upload(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_upload_bytes must be positive, got {v}")
        return v

    @field_validator("vision_endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Validate endpoint URL format."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"URL must use http or https scheme, got {v}")
        if not parsed.netloc:
            raise ValueError(f"URL must have a valid host, got {v}")
        return v

    @field_validator("vision_key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("VISION_KEY must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {v}")
        return v.upper()

    @field_validator("vision_strict_mode")
    @classmethod
    def validate_boolean_string(cls, v: str) -> str:
        """Validate boolean string format."""
        v_lower = v.lower().strip()
        if v_lower not in ("0", "1", "true", "false", "yes", "no"):
            raise ValueError(f"Boolean field must be '0', '1', 'true', 'false', 'yes', or 'no', got {v}")
        return v

    @property
    def allow_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if not self.allow_origins:
            return []
        return [origin.strip() for origin in self.allow_origins.split(",") if origin.strip()]

    @property
    def vision_strict_mode_bool(self) -> bool:
        """Convert vision_strict_mode string to boolean."""
        return self.vision_strict_mode.lower().strip() in ("1", "true", "yes")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded from environment variables and .env file on first call.
    Subsequent calls return the cached instance.

    Raises:
        ConfigurationError: If required settings are missing or invalid.

    Returns:
        Settings: The validated settings instance.
    """
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load configuration: {e}\n"
            "Please check your .env file and ensure VISION_ENDPOINT and VISION_KEY are set."
        ) from e
